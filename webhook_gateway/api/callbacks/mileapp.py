"""
MileApp task status callback endpoint.

MileApp reports progress of picking/packing/shipping/delivery tasks. Each
callback is mapped to the matching storefront order task and forwarded as an
``UpdateOrderTask`` call.
"""
from typing import Dict, Optional

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from webhook_gateway.api.deps import get_mileapp_auth_key, get_request_id, get_task_service
from webhook_gateway.api.validation import (
    ERR_INVALID_REQUEST_DATA,
    ERR_INVALID_STATUS,
    ERR_INVALID_X_API_KEY,
    ERR_MILEAPP_CONTENT_TYPE_REQUIRED,
    ERR_MILEAPP_INVALID_CONTENT_TYPE,
    ERR_ORDER_NUMBER_REQUIRED,
    ERR_STATUS_REQUIRED,
    ERR_TASK_REF_ID_REQUIRED,
    ERR_X_API_KEY_REQUIRED,
    CallbackValidationError,
    validate_api_key,
    validate_content_type,
)
from webhook_gateway.integrations.storefront_rpc import RPCError, TaskServiceClient
from webhook_gateway.models.enums import MileappTaskStatus, MileappTaskType, OrderTaskState, OrderTaskType
from webhook_gateway.models.schemas.base import MessageResponse
from webhook_gateway.models.schemas.mileapp import MileappStatusUpdate
from webhook_gateway.models.schemas.storefront import OrderTask, UpdateOrderTaskRequest
from webhook_gateway.utils import get_logger, log_business_event

router = APIRouter()
logger = get_logger(__name__)

API_KEY_HEADER = "X-Api-Key"
MSG_SUCCESS = "success"
MSG_UPDATE_FAILED = "failed to update order task"


def respond(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=MessageResponse(message=message).model_dump())


def validate_status_update(update: MileappStatusUpdate) -> None:
    """Check required fields; order matters for the message returned."""
    if not update.task_ref_id:
        raise CallbackValidationError(ERR_TASK_REF_ID_REQUIRED)
    if not update.user_var.order_number:
        raise CallbackValidationError(ERR_ORDER_NUMBER_REQUIRED)
    if not update.task_status:
        raise CallbackValidationError(ERR_STATUS_REQUIRED)
    if update.task_status not in {s.value for s in MileappTaskStatus}:
        raise CallbackValidationError(ERR_INVALID_STATUS)


def build_update_request(update: MileappStatusUpdate, task: OrderTask) -> UpdateOrderTaskRequest:
    """
    Translate a MileApp status into a task update.

    MileApp uses one task for both pickup and delivery, reporting ``ongoing``
    for pickup and ``done`` for delivery; internally those are separate
    tasks, so both statuses complete the task they were sent for.
    """
    additional_data: Optional[Dict[str, str]] = None

    if task.task_type == OrderTaskType.SHIPPING and update.task_status == MileappTaskStatus.ONGOING.value:
        additional_data = {
            "driver_name": update.assigned_to.full_name,
            "driver_phone": update.user_var.driver_phone,
        }

    if task.task_type == OrderTaskType.DELIVERY and update.task_status == MileappTaskStatus.DONE.value:
        additional_data = {
            "receiver_role": update.user_var.receiver,
            "receiver_name": update.user_var.receiver_name,
        }

    return UpdateOrderTaskRequest(
        task_id=task.task_id,
        state=OrderTaskState.SUCCESS,
        additional_data=additional_data,
    )


@router.post(
    "/status/{task_type}",
    response_model=MessageResponse,
    summary="MileApp task status update",
    description="Mark the matching storefront order task as done when MileApp reports progress",
)
async def handle_status_update(
    task_type: str,
    request: Request,
    task_service: TaskServiceClient = Depends(get_task_service),
    auth_key: str = Depends(get_mileapp_auth_key),
    request_id: str = Depends(get_request_id),
) -> JSONResponse:
    """Handle a MileApp task status callback."""
    log = logger.bind(handler="mileapp", request_id=request_id)
    log.info(
        "Received status update",
        remote_addr=request.client.host if request.client else "unknown",
    )

    try:
        mileapp_task_type = MileappTaskType(task_type)
    except ValueError:
        message = f"unsupported task type: {task_type}"
        log.error(message)
        return respond(status.HTTP_400_BAD_REQUEST, message)

    order_task_type = mileapp_task_type.order_task_type
    log = log.bind(task_type=order_task_type.value)

    try:
        validate_content_type(
            request.headers, ERR_MILEAPP_CONTENT_TYPE_REQUIRED, ERR_MILEAPP_INVALID_CONTENT_TYPE
        )
        validate_api_key(
            request.headers, API_KEY_HEADER, auth_key, ERR_X_API_KEY_REQUIRED, ERR_INVALID_X_API_KEY
        )
    except CallbackValidationError as e:
        log.error("Invalid request headers", error=e.message)
        return respond(status.HTTP_400_BAD_REQUEST, e.message)

    body = await request.body()
    try:
        update = MileappStatusUpdate.model_validate_json(body)
    except ValidationError as e:
        log.error("Failed to decode request data", error=str(e))
        return respond(status.HTTP_400_BAD_REQUEST, ERR_INVALID_REQUEST_DATA)

    try:
        validate_status_update(update)
    except CallbackValidationError as e:
        log.error("Invalid status update", error=e.message, task_status=update.task_status or None)
        return respond(status.HTTP_400_BAD_REQUEST, e.message)

    log = log.bind(
        task_ref_id=update.task_ref_id,
        task_status=update.task_status,
        order_number=update.user_var.order_number,
    )

    try:
        tasks = await task_service.get_order_task(order_id=update.user_var.order_number)
    except RPCError as e:
        log.error("Failed to get order task", error=str(e))
        return respond(status.HTTP_500_INTERNAL_SERVER_ERROR, MSG_UPDATE_FAILED)

    task = next((t for t in tasks if t.task_type == order_task_type), None)
    if task is None:
        log.error("Order task not found for task type", task_count=len(tasks))
        return respond(status.HTTP_500_INTERNAL_SERVER_ERROR, MSG_UPDATE_FAILED)

    log = log.bind(task_id=task.task_id)

    # MileApp sometimes sends the same callback twice.
    if task.state == OrderTaskState.SUCCESS:
        log.info("Order task is already marked successful, ignoring")
        return respond(status.HTTP_200_OK, MSG_SUCCESS)

    update_request = build_update_request(update, task)
    try:
        await task_service.update_order_task(update_request)
    except RPCError as e:
        log.error("Failed to update order task", error=str(e))
        return respond(status.HTTP_500_INTERNAL_SERVER_ERROR, MSG_UPDATE_FAILED)

    log_business_event(
        "order_task_updated",
        {
            "source": "mileapp",
            "task_id": task.task_id,
            "order_id": task.order_id,
            "state": update_request.state.value,
            "task_status": update.task_status,
        },
        request_id=request_id,
    )
    log.info("Successfully processed task status update")
    return respond(status.HTTP_200_OK, MSG_SUCCESS)
