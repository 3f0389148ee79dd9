"""
Marketplace Service Layer

Shared service-layer building blocks. Domain services live next to their
bounded context (``marketplace.ordering.domain.services``) and build on these.

Usage:
    from marketplace.services import BaseService, ErrorCodes, service_ok, service_err

    result = order_query_service.get_order(user.id, order_id)

    if result.ok:
        order = result.value
    else:
        error = result.error
"""

from .base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok

__all__ = [
    # Base classes
    "BaseService",
    "ServiceResult",
    # Helper functions
    "service_ok",
    "service_err",
    # Error codes
    "ErrorCodes",
]
