"""Consolidation of duplicate variant rows"""

from typing import Dict, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import ConsolidationFailure
from ..core.setting import get_settings
from ..models.variant import VariantKind
from ..repository.variant_repository import VariantRepository
from ..schemas.allocation import ConsolidationReport
from ..utils.logging import setup_allocation_logging as setup_logging

logger = setup_logging("allocation_service.consolidation", log_level=get_settings().LOG_LEVEL)


class ConsolidationService:
    """Keeps at most one row per (product, location, kind, name)"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.repository = VariantRepository(db)

    async def consolidate(
        self,
        product_id: int,
        location_id: int,
        correlation_id: Optional[str] = None,
    ) -> ConsolidationReport:
        """Merge duplicate rows of one location into the oldest row of each group.

        Idempotent. A group whose merge fails is logged and left for the next
        pass; other groups still get merged.
        """
        variants = await self.repository.list_variants(product_id, location_id)

        # Plain values only: a failed merge rolls back and expires loaded rows
        groups: Dict[Tuple[VariantKind, str], List[Tuple[int, int]]] = {}
        for variant in variants:
            groups.setdefault((variant.kind, variant.name), []).append(
                (variant.id, variant.quantity)
            )

        report = ConsolidationReport(product_id=product_id, location_id=location_id)

        for (kind, name), rows in groups.items():
            if len(rows) < 2:
                continue

            total_quantity = sum(quantity for _, quantity in rows)
            primary_id = rows[0][0]
            duplicate_ids = [variant_id for variant_id, _ in rows[1:]]

            try:
                await self.repository.merge_duplicates(
                    primary_id, total_quantity, duplicate_ids
                )
            except SQLAlchemyError as e:
                failure = ConsolidationFailure(
                    f"Could not merge {len(rows)} rows of {kind.value} {name}: {e}"
                )
                logger.warning(
                    str(failure),
                    extra={
                        "product_id": product_id,
                        "location_id": location_id,
                        "variant_kind": kind.value,
                        "variant_name": name,
                        "correlation_id": correlation_id,
                        "event_type": "consolidation_failed",
                    },
                    exc_info=True,
                )
                report.failed_groups.append(name)
                continue

            report.merged_groups += 1
            report.removed_rows += len(duplicate_ids)

            logger.info(
                "Duplicate variant rows merged",
                extra={
                    "product_id": product_id,
                    "location_id": location_id,
                    "variant_kind": kind.value,
                    "variant_name": name,
                    "primary_id": primary_id,
                    "removed_ids": duplicate_ids,
                    "total_quantity": total_quantity,
                    "correlation_id": correlation_id,
                },
            )

        return report
