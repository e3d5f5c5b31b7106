"""
Midtrans payment notification endpoint.

Responses carry only a status code (empty JSON body); Midtrans redelivers
any notification that does not get a 2xx.
"""
import time

from fastapi import APIRouter, Depends, Request, Response, status
from pydantic import ValidationError

from webhook_gateway.api.deps import get_payment_reconciler, get_request_id
from webhook_gateway.api.validation import CallbackValidationError, validate_content_type
from webhook_gateway.models.schemas.midtrans import MidtransNotification
from webhook_gateway.services.payment_reconciler import PaymentReconciler
from webhook_gateway.utils import get_logger, log_performance

router = APIRouter()
logger = get_logger(__name__)

def _status_only(code: int) -> Response:
    return Response(status_code=code, media_type="application/json")


@router.post(
    "/transaction-update",
    status_code=status.HTTP_200_OK,
    summary="Midtrans transaction status notification",
    description="Verify, re-fetch and reconcile a Midtrans payment notification against the payment task",
    responses={400: {"description": "Rejected; Midtrans will redeliver"}, 500: {"description": "Not processed; Midtrans will redeliver"}},
)
async def handle_transaction_update(
    request: Request,
    reconciler: PaymentReconciler = Depends(get_payment_reconciler),
    request_id: str = Depends(get_request_id),
) -> Response:
    """Handle a payment notification from Midtrans."""
    start_time = time.time()
    log = logger.bind(handler="midtrans", request_id=request_id)

    try:
        validate_content_type(request.headers)
    except CallbackValidationError as e:
        log.error("Invalid request headers", error=e.message)
        return _status_only(status.HTTP_400_BAD_REQUEST)

    body = await request.body()
    try:
        notification = MidtransNotification.model_validate_json(body)
    except ValidationError as e:
        log.error(
            "Failed to decode request data",
            error=str(e),
            request_payload=body.decode("utf-8", errors="replace"),
        )
        return _status_only(status.HTTP_400_BAD_REQUEST)

    outcome = await reconciler.reconcile(notification, request_id=request_id)

    log_performance(
        "midtrans_transaction_update",
        round((time.time() - start_time) * 1000, 2),
        {"status_code": outcome.status_code, "reason": outcome.reason, "request_id": request_id},
    )
    return _status_only(outcome.status_code)
