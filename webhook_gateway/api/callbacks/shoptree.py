"""
Shoptree inventory callback endpoints.

Shoptree pushes batches of stock levels and product availability per
location. Each item is validated and forwarded to the inventory service in
order; the first failing item ends the request.
"""
from typing import List

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from pydantic import TypeAdapter, ValidationError

from webhook_gateway.api.deps import get_inventory_service, get_request_id, get_shoptree_auth_key
from webhook_gateway.api.validation import (
    ERR_ENABLED_REQUIRED,
    ERR_IN_STOCK_REQUIRED,
    ERR_INVALID_IN_STOCK,
    ERR_INVALID_REFERENCE_TYPE,
    ERR_INVALID_REQUEST_DATA,
    ERR_INVALID_X_CLIENT_API_KEY,
    ERR_LOCATION_ID_REQUIRED,
    ERR_PRODUCT_VARIANT_ID_REQUIRED,
    ERR_QUANTITY_CHANGED_REQUIRED,
    ERR_REFERENCE_ID_REQUIRED,
    ERR_REFERENCE_TYPE_REQUIRED,
    ERR_X_CLIENT_API_KEY_REQUIRED,
    CallbackValidationError,
    validate_api_key,
    validate_content_type,
)
from webhook_gateway.integrations.storefront_rpc import InventoryServiceClient, RPCError
from webhook_gateway.models.enums import ProductStatus, ShoptreeReferenceType, UpdateSource
from webhook_gateway.models.schemas.base import MessageResponse
from webhook_gateway.models.schemas.shoptree import ShoptreeProductStatusUpdate, ShoptreeStockUpdate
from webhook_gateway.models.schemas.storefront import UpdateStatusRequest, UpdateStockRequest
from webhook_gateway.utils import get_logger, log_business_event
from webhook_gateway.utils.logger import StructuredLogger
from webhook_gateway.utils.observability import dump_request

router = APIRouter()
logger = get_logger(__name__)

API_KEY_HEADER = "X-Client-Api-Key"
MSG_SUCCESS = "success"

_stock_batch = TypeAdapter(List[ShoptreeStockUpdate])
_status_batch = TypeAdapter(List[ShoptreeProductStatusUpdate])
_reference_types = {r.value for r in ShoptreeReferenceType}


def respond(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=MessageResponse(message=message).model_dump())


def validate_stock_update(item: ShoptreeStockUpdate) -> None:
    if not item.reference_id:
        raise CallbackValidationError(ERR_REFERENCE_ID_REQUIRED)
    if not item.reference_type:
        raise CallbackValidationError(ERR_REFERENCE_TYPE_REQUIRED)
    if not item.location_id:
        raise CallbackValidationError(ERR_LOCATION_ID_REQUIRED)
    if not item.product_variant_id:
        raise CallbackValidationError(ERR_PRODUCT_VARIANT_ID_REQUIRED)
    if item.in_stock is None:
        raise CallbackValidationError(ERR_IN_STOCK_REQUIRED)
    if item.quantity_changed is None:
        raise CallbackValidationError(ERR_QUANTITY_CHANGED_REQUIRED)


def to_stock_request(item: ShoptreeStockUpdate) -> UpdateStockRequest:
    """Convert a validated stock item; stock must be a whole number."""
    if item.in_stock is None:
        raise CallbackValidationError(ERR_IN_STOCK_REQUIRED)
    if not float(item.in_stock).is_integer():
        raise CallbackValidationError(ERR_INVALID_IN_STOCK)
    return UpdateStockRequest(
        store_id=item.location_id,
        product_variant_id=item.product_variant_id,
        quantity=int(item.in_stock),
        source=UpdateSource.EXTERNAL,
    )


def validate_product_status_update(item: ShoptreeProductStatusUpdate) -> None:
    if not item.location_id:
        raise CallbackValidationError(ERR_LOCATION_ID_REQUIRED)
    if not item.product_variant_id:
        raise CallbackValidationError(ERR_PRODUCT_VARIANT_ID_REQUIRED)
    if item.enabled is None:
        raise CallbackValidationError(ERR_ENABLED_REQUIRED)


def to_status_request(item: ShoptreeProductStatusUpdate) -> UpdateStatusRequest:
    return UpdateStatusRequest(
        store_id=item.location_id,
        product_variant_id=item.product_variant_id,
        status=ProductStatus.ENABLED if item.enabled else ProductStatus.DISABLED,
        source=UpdateSource.EXTERNAL,
    )


async def _read_batch(request: Request, adapter: TypeAdapter, log: StructuredLogger, label: str):
    """Return the decoded batch, or None when the body cannot be decoded."""
    body = await request.body()
    try:
        return adapter.validate_json(body)
    except ValidationError as e:
        log.error("Failed to decode request data", error=str(e))
        if log.is_debug_enabled():
            log.debug(
                f"{label} request dump",
                dump=dump_request(request.method, str(request.url), request.headers, body),
            )
        return None


@router.post(
    "/stock-update",
    response_model=MessageResponse,
    summary="Shoptree stock update",
    description="Forward per-location stock levels to the inventory service",
)
async def handle_stock_update(
    request: Request,
    inventory_service: InventoryServiceClient = Depends(get_inventory_service),
    auth_key: str = Depends(get_shoptree_auth_key),
    request_id: str = Depends(get_request_id),
) -> JSONResponse:
    log = logger.bind(handler="shoptree", request_id=request_id)

    try:
        validate_content_type(request.headers)
        validate_api_key(
            request.headers, API_KEY_HEADER, auth_key, ERR_X_CLIENT_API_KEY_REQUIRED, ERR_INVALID_X_CLIENT_API_KEY
        )
    except CallbackValidationError as e:
        log.error("Invalid request headers", error=e.message)
        return respond(status.HTTP_400_BAD_REQUEST, e.message)

    batch = await _read_batch(request, _stock_batch, log, "PRODUCT STOCK UPDATE")
    if batch is None:
        return respond(status.HTTP_400_BAD_REQUEST, ERR_INVALID_REQUEST_DATA)

    for item in batch:
        item_log = log.bind(
            shoptree_variant_id=item.product_variant_id,
            shoptree_location_id=item.location_id,
        )
        try:
            validate_stock_update(item)
            # Stock moves of every listed reference type are forwarded.
            if item.reference_type not in _reference_types:
                raise CallbackValidationError(ERR_INVALID_REFERENCE_TYPE)
            stock_request = to_stock_request(item)
        except CallbackValidationError as e:
            item_log.error("Invalid stock update", error=e.message, reference_type=item.reference_type or None)
            return respond(status.HTTP_400_BAD_REQUEST, e.message)

        try:
            await inventory_service.update_stock(stock_request)
        except RPCError as e:
            item_log.error("Failed to update stock to inventory service", error=str(e))
            return respond(status.HTTP_500_INTERNAL_SERVER_ERROR, "failed to update stock")

        log_business_event(
            "stock_updated",
            {
                "source": "shoptree",
                "store_id": stock_request.store_id,
                "product_variant_id": stock_request.product_variant_id,
                "quantity": stock_request.quantity,
                "reference_type": item.reference_type,
            },
            request_id=request_id,
        )
        item_log.info("Successfully updated stock in inventory service")

    log.info("Successfully processed update stock request", item_count=len(batch))
    return respond(status.HTTP_200_OK, MSG_SUCCESS)


@router.post(
    "/product-status-update",
    response_model=MessageResponse,
    summary="Shoptree product status update",
    description="Enable or disable product variants per location in the inventory service",
)
async def handle_product_status_update(
    request: Request,
    inventory_service: InventoryServiceClient = Depends(get_inventory_service),
    auth_key: str = Depends(get_shoptree_auth_key),
    request_id: str = Depends(get_request_id),
) -> JSONResponse:
    log = logger.bind(handler="shoptree", request_id=request_id)

    try:
        validate_content_type(request.headers)
        validate_api_key(
            request.headers, API_KEY_HEADER, auth_key, ERR_X_CLIENT_API_KEY_REQUIRED, ERR_INVALID_X_CLIENT_API_KEY
        )
    except CallbackValidationError as e:
        log.error("Invalid request headers", error=e.message)
        return respond(status.HTTP_400_BAD_REQUEST, e.message)

    batch = await _read_batch(request, _status_batch, log, "PRODUCT STATUS UPDATE")
    if batch is None:
        return respond(status.HTTP_400_BAD_REQUEST, ERR_INVALID_REQUEST_DATA)

    for item in batch:
        item_log = log.bind(
            shoptree_variant_id=item.product_variant_id,
            shoptree_location_id=item.location_id,
        )
        try:
            validate_product_status_update(item)
        except CallbackValidationError as e:
            item_log.error("Invalid product status update", error=e.message)
            return respond(status.HTTP_400_BAD_REQUEST, e.message)

        status_request = to_status_request(item)
        try:
            await inventory_service.update_status(status_request)
        except RPCError as e:
            item_log.error("Failed to update status to inventory service", error=str(e))
            return respond(status.HTTP_500_INTERNAL_SERVER_ERROR, "failed to update product variant status")

        log_business_event(
            "product_status_updated",
            {
                "source": "shoptree",
                "store_id": status_request.store_id,
                "product_variant_id": status_request.product_variant_id,
                "status": status_request.status.value,
            },
            request_id=request_id,
        )

    log.info("Successfully processed update product status request", item_count=len(batch))
    return respond(status.HTTP_200_OK, MSG_SUCCESS)
