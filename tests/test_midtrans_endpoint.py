import json
import logging

from webhook_gateway.models.enums import OrderState, OrderTaskState
from webhook_gateway.models.schemas.storefront import Order

URL = "/midtrans/transaction-update"


def test_settlement_notification_is_processed(client, make_notification, task_service):
    resp = client.post(URL, json=make_notification())
    assert resp.status_code == 200
    assert resp.content == b""
    assert resp.headers["content-type"].startswith("application/json")
    assert [u.state for u in task_service.updates] == [OrderTaskState.SUCCESS]


def test_camel_case_fields_are_accepted(client, make_notification, task_service):
    body = make_notification()
    camel = {
        "transactionStatus": body.pop("transaction_status"),
        "signatureKey": body.pop("signature_key"),
        "orderId": body.pop("order_id"),
        "paymentType": body.pop("payment_type"),
        **body,
    }
    resp = client.post(URL, json=camel)
    assert resp.status_code == 200
    assert len(task_service.updates) == 1


def test_wrong_content_type_is_rejected(client, make_notification, status_lookup):
    resp = client.post(URL, content=json.dumps(make_notification()), headers={"Content-Type": "text/plain"})
    assert resp.status_code == 400
    assert status_lookup.calls == []


def test_missing_content_type_is_rejected(client, make_notification):
    resp = client.post(URL, content=json.dumps(make_notification()).encode())
    assert resp.status_code == 400


def test_undecodable_body_is_rejected(client, status_lookup):
    resp = client.post(URL, content=b"{not json", headers={"Content-Type": "application/json"})
    assert resp.status_code == 400
    assert status_lookup.calls == []


def test_invalid_signature_is_rejected(client, make_notification, task_service):
    resp = client.post(URL, json=make_notification(signature_key="0" * 128))
    assert resp.status_code == 400
    assert task_service.get_calls == []


def test_pending_notification_is_acknowledged(client, make_notification, status_lookup):
    resp = client.post(URL, json=make_notification(transaction_status="pending"))
    assert resp.status_code == 200
    assert status_lookup.calls == []


def test_unsupported_payment_type_returns_server_error(client, make_notification):
    resp = client.post(URL, json=make_notification(payment_type="qris"))
    assert resp.status_code == 500


def test_concluded_order_returns_bad_request(client, make_notification, order_service, task_service):
    order_service.order = Order(order_id="O1", state=OrderState.DONE)
    resp = client.post(URL, json=make_notification())
    assert resp.status_code == 400
    assert task_service.updates == []


def test_duplicate_delivery_is_idempotent(client, make_notification, task_service):
    first = client.post(URL, json=make_notification())
    assert first.status_code == 200
    # The storefront now reports the payment task as done.
    task_service.tasks[0] = task_service.tasks[0].model_copy(update={"state": OrderTaskState.SUCCESS})
    second = client.post(URL, json=make_notification())
    assert second.status_code == 200
    assert len(task_service.updates) == 1


def test_get_method_not_allowed(client):
    resp = client.get(URL)
    assert resp.status_code == 405


def test_null_fraud_status_is_treated_as_empty(client, make_notification, task_service):
    resp = client.post(URL, json=make_notification(fraud_status=None, settlement_time=None))
    assert resp.status_code == 200
    assert [u.state for u in task_service.updates] == [OrderTaskState.SUCCESS]


def test_undecodable_body_is_logged_with_payload(client, caplog):
    gateway_logger = logging.getLogger("webhook_gateway")
    gateway_logger.addHandler(caplog.handler)
    try:
        with caplog.at_level(logging.ERROR, logger="webhook_gateway"):
            resp = client.post(URL, content=b'{"order_id": 12', headers={"Content-Type": "application/json"})
    finally:
        gateway_logger.removeHandler(caplog.handler)
    assert resp.status_code == 400
    records = [r for r in caplog.records if r.getMessage() == "Failed to decode request data"]
    assert records
    assert records[0].extra_data["request_payload"] == '{"order_id": 12'
