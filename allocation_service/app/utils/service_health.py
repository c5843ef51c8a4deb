"""
Allocation Service Health Check Utilities
=========================================
"""

import time
from typing import Any, Awaitable, Callable, Dict

from sqlalchemy import text

from ..core.database import database_manager

HealthCheck = Callable[[], Awaitable[Dict[str, Any]]]


class AllocationServiceHealthChecker:
    """Allocation Service specific health checker"""

    def __init__(self, service_name: str = "allocation_service") -> None:
        self.service_name = service_name
        self.checks: Dict[str, HealthCheck] = {}
        self.start_time = time.time()

    def add_check(self, name: str, check_func: HealthCheck) -> None:
        self.checks[name] = check_func

    async def run_checks(self) -> Dict[str, Any]:
        results = {}
        check_start_time = time.time()

        for name, check_func in self.checks.items():
            individual_start = time.time()
            try:
                result = await check_func()
                result["duration_ms"] = round(
                    (time.time() - individual_start) * 1000, 2
                )
                results[name] = result
            except Exception as e:
                results[name] = {
                    "status": "error",
                    "error": str(e),
                    "duration_ms": round((time.time() - individual_start) * 1000, 2),
                }

        total_time = (time.time() - check_start_time) * 1000
        uptime = time.time() - self.start_time

        return {
            "service": self.service_name,
            "status": "healthy"
            if all(r.get("status") == "healthy" for r in results.values())
            else "unhealthy",
            "checks": results,
            "total_duration_ms": round(total_time, 2),
            "uptime_seconds": round(uptime, 2),
            "timestamp": time.time(),
        }

    def add_allocation_specific_checks(self, version: str) -> None:
        async def basic_check() -> Dict[str, Any]:
            return {
                "status": "healthy",
                "message": "Allocation Service is running",
                "version": version,
                "component": "core",
            }

        async def database_check() -> Dict[str, Any]:
            async with database_manager.async_engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return {
                "status": "healthy",
                "message": "Record store reachable",
                "component": "database",
            }

        self.add_check("basic", basic_check)
        self.add_check("database", database_check)


async def create_allocation_service_health_check(
    service_name: str = "allocation_service", version: str = "1.0.0"
) -> Dict[str, Any]:
    """Create basic Allocation Service health check"""
    health_checker = AllocationServiceHealthChecker(service_name)
    health_checker.add_allocation_specific_checks(version)
    return await health_checker.run_checks()
