"""Payment notification reconciliation.

Turns a Midtrans notification into (at most) one payment-task transition on
the storefront task service. The notification body is only trusted to name
the transaction and to pass the signature gate; the decision itself is made
on a fresh status lookup.

Status codes are chosen with Midtrans redelivery in mind: Midtrans retries
any non-2xx notification, so transient failures (status lookup, RPC,
deadline) answer 4xx/5xx and there is no local retry.

Flow:
  signature -> pending short-circuit -> method dispatch -> status lookup
  -> payment task -> idempotency guard -> order terminal guard -> transition
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Optional

from webhook_gateway.config import MIDTRANS_SETTINGS
from webhook_gateway.integrations.midtrans import (
    InvalidSignatureError,
    TransactionLookupError,
    TransactionLookupRegistry,
    UnsupportedPaymentMethodError,
    validate_callback_signature,
)
from webhook_gateway.integrations.storefront_rpc import (
    OrderServiceClient,
    RPCError,
    TaskServiceClient,
)
from webhook_gateway.models.enums import (
    FAILED_TRANSACTION_STATUSES,
    FRAUD_STATUS_ACCEPT,
    SUCCESSFUL_TRANSACTION_STATUSES,
    TERMINAL_ORDER_STATES,
    OrderTaskState,
    OrderTaskType,
    TransactionStatus,
)
from webhook_gateway.models.schemas.midtrans import MidtransNotification, MidtransTransaction
from webhook_gateway.models.schemas.storefront import OrderTask, UpdateOrderTaskRequest
from webhook_gateway.utils import get_logger, log_business_event
from webhook_gateway.utils.logger import StructuredLogger
from webhook_gateway.utils.task_lock import TaskLease, TaskLeaseUnavailableError

logger = get_logger(__name__)

HTTP_OK = 200
HTTP_BAD_REQUEST = 400
HTTP_INTERNAL_SERVER_ERROR = 500


@dataclass(frozen=True)
class ReconcileOutcome:
    status_code: int
    reason: str
    transitions: tuple[OrderTaskState, ...] = ()


class PaymentTaskNotFoundError(Exception):
    def __init__(self, task_id: str):
        super().__init__(f"no payment task found for task id {task_id!r}")
        self.task_id = task_id


def select_payment_task(tasks: list[OrderTask]) -> Optional[OrderTask]:
    for task in tasks:
        if task.task_type == OrderTaskType.PAYMENT:
            return task
    return None


def plan_transitions(
    transaction: MidtransTransaction, *, short_circuit_fraud_failure: bool = False
) -> tuple[OrderTaskState, ...]:
    """Map an authoritative transaction to the ordered task transitions to apply.

    capture/settlement: SUCCESS, preceded by FAILED when fraud detection did
    not accept the transaction. With ``short_circuit_fraud_failure`` the
    FAILED transition is the only one.
    expire/failure/cancel/deny: FAILED.
    Anything else (authorize, refund, chargeback, ...): nothing.
    """
    status = transaction.transaction_status.lower()
    if status in SUCCESSFUL_TRANSACTION_STATUSES:
        fraud_status = transaction.fraud_status.lower()
        if fraud_status and fraud_status != FRAUD_STATUS_ACCEPT:
            if short_circuit_fraud_failure:
                return (OrderTaskState.FAILED,)
            # Legacy sequencing kept until the fraud handling is confirmed.
            return (OrderTaskState.FAILED, OrderTaskState.SUCCESS)
        return (OrderTaskState.SUCCESS,)
    if status in FAILED_TRANSACTION_STATUSES:
        return (OrderTaskState.FAILED,)
    return ()


class PaymentReconciler:
    """Stateless reconciler; one instance serves all requests."""

    def __init__(
        self,
        server_key: str,
        lookups: TransactionLookupRegistry,
        task_service: TaskServiceClient,
        order_service: OrderServiceClient,
        lease: Optional[TaskLease] = None,
        timeout_seconds: Optional[float] = None,
        short_circuit_fraud_failure: Optional[bool] = None,
    ):
        if not server_key:
            raise ValueError("midtrans server key not found")
        self.server_key = server_key
        self.lookups = lookups
        self.task_service = task_service
        self.order_service = order_service
        self.lease = lease or TaskLease(enabled=False)
        self.timeout_seconds = float(
            timeout_seconds if timeout_seconds is not None else MIDTRANS_SETTINGS["request_timeout_seconds"]
        )
        self.short_circuit_fraud_failure = bool(
            MIDTRANS_SETTINGS["short_circuit_fraud_failure"]
            if short_circuit_fraud_failure is None
            else short_circuit_fraud_failure
        )

    async def reconcile(
        self, notification: MidtransNotification, request_id: Optional[str] = None
    ) -> ReconcileOutcome:
        log = logger.bind(
            handler="midtrans",
            task_id=notification.order_id,
            transaction_id=notification.transaction_id,
            signature=notification.signature_key,
            request_payload=notification.model_dump(),
            request_id=request_id,
        )

        try:
            validate_callback_signature(
                notification.signature_key,
                notification.order_id,
                notification.status_code,
                notification.gross_amount,
                self.server_key,
            )
        except InvalidSignatureError as e:
            log.error("Invalid callback signature", error=str(e))
            return ReconcileOutcome(HTTP_BAD_REQUEST, "invalid_signature")

        # The provider notifies again once the transaction leaves pending.
        if notification.transaction_status.lower() == TransactionStatus.PENDING.value:
            log.info("Pending transaction notification skipped")
            return ReconcileOutcome(HTTP_OK, "pending")

        try:
            lookup = self.lookups.resolve(notification.payment_type)
        except UnsupportedPaymentMethodError as e:
            log.error("Invalid payment type", payment_type=notification.payment_type, error=str(e))
            return ReconcileOutcome(HTTP_INTERNAL_SERVER_ERROR, "unsupported_payment_method")

        # The deadline covers taking the lease as well as the work under it.
        try:
            return await asyncio.wait_for(
                self._reconcile_leased(notification, lookup, log, request_id),
                timeout=self.timeout_seconds,
            )
        except TaskLeaseUnavailableError:
            log.warning("Concurrent notification in progress for task, deferring to redelivery")
            return ReconcileOutcome(HTTP_INTERNAL_SERVER_ERROR, "task_lease_unavailable")
        except asyncio.TimeoutError:
            log.error("Reconciliation deadline exceeded", timeout_seconds=self.timeout_seconds)
            return ReconcileOutcome(HTTP_INTERNAL_SERVER_ERROR, "deadline_exceeded")

    async def _reconcile_leased(
        self,
        notification: MidtransNotification,
        lookup,
        log: StructuredLogger,
        request_id: Optional[str],
    ) -> ReconcileOutcome:
        async with self.lease.hold(notification.order_id):
            return await self._reconcile_authoritative(notification, lookup, log, request_id)

    async def _reconcile_authoritative(
        self,
        notification: MidtransNotification,
        lookup,
        log: StructuredLogger,
        request_id: Optional[str],
    ) -> ReconcileOutcome:
        # From here on only the looked-up transaction is used for decisions.
        try:
            transaction = await lookup.get_transaction_status(notification.order_id)
        except TransactionLookupError as e:
            # 400 makes Midtrans redeliver the notification later.
            log.error("Failed to get transaction from midtrans API", error=str(e))
            return ReconcileOutcome(HTTP_BAD_REQUEST, "status_lookup_failed")

        try:
            tasks = await self.task_service.get_order_task(task_id=notification.order_id)
        except RPCError as e:
            log.error("Invalid task", error=str(e))
            return ReconcileOutcome(HTTP_INTERNAL_SERVER_ERROR, "task_lookup_failed")

        task = select_payment_task(tasks)
        if task is None:
            err = PaymentTaskNotFoundError(notification.order_id)
            log.error("Payment task not found", error=str(err), task_count=len(tasks))
            return ReconcileOutcome(HTTP_INTERNAL_SERVER_ERROR, "payment_task_not_found")

        if task.state == OrderTaskState.SUCCESS:
            log.info("Order task is already marked successful, ignoring")
            return ReconcileOutcome(HTTP_OK, "already_successful")

        log = log.bind(order_id=task.order_id)

        try:
            order = await self.order_service.get(task.order_id)
        except RPCError as e:
            log.error("Invalid order", error=str(e))
            return ReconcileOutcome(HTTP_INTERNAL_SERVER_ERROR, "order_lookup_failed")

        if order.state in TERMINAL_ORDER_STATES:
            log.error("Invalid order state", order_state=order.state.value)
            return ReconcileOutcome(HTTP_BAD_REQUEST, "order_already_concluded")

        log = log.bind(
            transaction_code=transaction.status_code,
            transaction_status=transaction.transaction_status,
            transaction_fraud_status=transaction.fraud_status,
        )

        transitions = plan_transitions(
            transaction, short_circuit_fraud_failure=self.short_circuit_fraud_failure
        )
        applied: list[OrderTaskState] = []
        for state in transitions:
            log.info("Updating order task", target_state=state.value)
            try:
                await self.task_service.update_order_task(
                    UpdateOrderTaskRequest(task_id=task.task_id, state=state)
                )
            except RPCError as e:
                log.error("Failed to update order task", target_state=state.value, error=str(e))
                return ReconcileOutcome(HTTP_INTERNAL_SERVER_ERROR, "task_update_failed", tuple(applied))
            applied.append(state)
            log_business_event(
                "order_task_updated",
                {
                    "source": "midtrans",
                    "task_id": task.task_id,
                    "order_id": task.order_id,
                    "state": state.value,
                    "transaction_status": transaction.transaction_status,
                },
                request_id=request_id,
            )

        if not transitions:
            log.info("Transaction status is not actionable, no task update")
        log.info("Successfully processed update transaction status request")
        return ReconcileOutcome(HTTP_OK, "processed" if applied else "no_transition", tuple(applied))


__all__ = [
    "PaymentReconciler",
    "ReconcileOutcome",
    "PaymentTaskNotFoundError",
    "plan_transitions",
    "select_payment_task",
]
