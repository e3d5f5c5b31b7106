"""
Dependencies for the callback endpoints.

Long-lived collaborators (RPC clients, the payment reconciler) are built
once in the application lifespan and stored on ``app.state``; these
providers hand them to the endpoints so tests can override them through
``app.dependency_overrides``.
"""
from fastapi import HTTPException, Request, status

from webhook_gateway.config import MILEAPP_SETTINGS, SHOPTREE_SETTINGS
from webhook_gateway.integrations.storefront_rpc import InventoryServiceClient, TaskServiceClient
from webhook_gateway.services.payment_reconciler import PaymentReconciler
from webhook_gateway.utils import get_logger
from webhook_gateway.utils.observability import ensure_request_id

logger = get_logger(__name__)


def _from_state(request: Request, name: str):
    value = getattr(request.app.state, name, None)
    if value is None:
        logger.error("Application dependency not initialized", dependency=name)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="service not initialized",
        )
    return value


def get_payment_reconciler(request: Request) -> PaymentReconciler:
    return _from_state(request, "payment_reconciler")


def get_task_service(request: Request) -> TaskServiceClient:
    return _from_state(request, "task_service")


def get_inventory_service(request: Request) -> InventoryServiceClient:
    return _from_state(request, "inventory_service")


def get_mileapp_auth_key() -> str:
    return MILEAPP_SETTINGS["auth_key"]


def get_shoptree_auth_key() -> str:
    return SHOPTREE_SETTINGS["auth_key"]


def get_request_id(request: Request) -> str:
    """Request id set by the logging middleware, or a fresh one."""
    return getattr(request.state, "request_id", None) or ensure_request_id(request.headers)
