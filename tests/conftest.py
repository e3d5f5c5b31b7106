import asyncio
import sys
from pathlib import Path
from typing import List, Optional

import pytest
from fastapi.testclient import TestClient

# Ensure project root on sys.path so 'webhook_gateway' resolves without an install
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from webhook_gateway.main import app  # type: ignore
from webhook_gateway.api import deps  # type: ignore
from webhook_gateway.integrations.midtrans import TransactionLookupRegistry, compute_signature
from webhook_gateway.models.enums import OrderState, OrderTaskState, OrderTaskType
from webhook_gateway.models.schemas.midtrans import MidtransTransaction
from webhook_gateway.models.schemas.storefront import Order, OrderTask
from webhook_gateway.services.payment_reconciler import PaymentReconciler
"""Pytest fixtures and in-memory fakes for the storefront services.

The production app builds its clients in the lifespan; tests bypass the
lifespan and inject fakes through ``app.dependency_overrides``.
"""

SERVER_KEY = "SB-Mid-server-test"
MILEAPP_KEY = "mileapp-test-key"
SHOPTREE_KEY = "shoptree-test-key"


class FakeTaskService:
    """Records calls; ``tasks`` is what GetOrderTask returns."""

    def __init__(self):
        self.tasks: List[OrderTask] = []
        self.get_calls: list = []
        self.updates: list = []
        self.get_error: Optional[Exception] = None
        self.update_error: Optional[Exception] = None

    async def get_order_task(self, *, task_id=None, order_id=None):
        self.get_calls.append({"task_id": task_id, "order_id": order_id})
        if self.get_error:
            raise self.get_error
        return list(self.tasks)

    async def update_order_task(self, request):
        if self.update_error:
            raise self.update_error
        self.updates.append(request)


class FakeOrderService:
    def __init__(self):
        self.order = Order(order_id="O1", state=OrderState.PENDING)
        self.calls: list = []
        self.error: Optional[Exception] = None

    async def get(self, order_id):
        self.calls.append(order_id)
        if self.error:
            raise self.error
        return self.order


class FakeInventoryService:
    """``fail_at`` makes the n-th call (0-based) raise ``error``."""

    def __init__(self):
        self.stock_updates: list = []
        self.status_updates: list = []
        self.error: Optional[Exception] = None
        self.fail_at: Optional[int] = None
        self._calls = 0

    def _maybe_fail(self):
        index = self._calls
        self._calls += 1
        if self.error and (self.fail_at is None or self.fail_at == index):
            raise self.error

    async def update_stock(self, request):
        self._maybe_fail()
        self.stock_updates.append(request)

    async def update_status(self, request):
        self._maybe_fail()
        self.status_updates.append(request)


class FakeStatusLookup:
    """Stands in for the Midtrans status API."""

    def __init__(self):
        self.transaction = MidtransTransaction(
            order_id="T1",
            transaction_status="settlement",
            fraud_status="accept",
            status_code="200",
            gross_amount="10000.00",
            payment_type="gopay",
        )
        self.calls: list = []
        self.error: Optional[Exception] = None
        self.delay: float = 0

    async def get_transaction_status(self, order_id):
        self.calls.append(order_id)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.transaction


@pytest.fixture()
def task_service():
    service = FakeTaskService()
    service.tasks = [
        OrderTask(task_id="T1", order_id="O1", task_type=OrderTaskType.PAYMENT, state=OrderTaskState.PENDING),
        OrderTask(task_id="T2", order_id="O1", task_type=OrderTaskType.PICKING, state=OrderTaskState.PENDING),
    ]
    return service


@pytest.fixture()
def order_service():
    return FakeOrderService()


@pytest.fixture()
def inventory_service():
    return FakeInventoryService()


@pytest.fixture()
def status_lookup():
    return FakeStatusLookup()


@pytest.fixture()
def lookup_registry(status_lookup):
    return TransactionLookupRegistry({"bank_transfer": status_lookup, "gopay": status_lookup})


@pytest.fixture()
def reconciler(lookup_registry, task_service, order_service):
    return PaymentReconciler(
        server_key=SERVER_KEY,
        lookups=lookup_registry,
        task_service=task_service,
        order_service=order_service,
        short_circuit_fraud_failure=False,
    )


@pytest.fixture()
def make_notification():
    """Build a correctly signed Midtrans notification body."""

    def _make(**overrides):
        body = {
            "transaction_time": "2024-01-01 10:00:00",
            "transaction_status": "settlement",
            "transaction_id": "tx-1",
            "status_message": "midtrans payment notification",
            "status_code": "200",
            "payment_type": "gopay",
            "order_id": "T1",
            "merchant_id": "M1",
            "gross_amount": "10000.00",
            "fraud_status": "accept",
            "currency": "IDR",
        }
        body.update(overrides)
        if "signature_key" not in overrides:
            body["signature_key"] = compute_signature(
                body["order_id"], body["status_code"], body["gross_amount"], SERVER_KEY
            )
        return body

    return _make


@pytest.fixture()
def client(reconciler, task_service, inventory_service):
    app.dependency_overrides[deps.get_payment_reconciler] = lambda: reconciler
    app.dependency_overrides[deps.get_task_service] = lambda: task_service
    app.dependency_overrides[deps.get_inventory_service] = lambda: inventory_service
    app.dependency_overrides[deps.get_mileapp_auth_key] = lambda: MILEAPP_KEY
    app.dependency_overrides[deps.get_shoptree_auth_key] = lambda: SHOPTREE_KEY
    yield TestClient(app)
    app.dependency_overrides.clear()
