"""
Error handling package for Allocation Service.
"""

from .error_handler import AllocationServiceErrorHandler, setup_allocation_error_handling

__all__ = ["AllocationServiceErrorHandler", "setup_allocation_error_handling"]
