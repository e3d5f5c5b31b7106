import pytest

from conftest import SHOPTREE_KEY
from webhook_gateway.api.callbacks.shoptree import to_stock_request
from webhook_gateway.api.validation import CallbackValidationError
from webhook_gateway.integrations.storefront_rpc import RPCError
from webhook_gateway.models.enums import ProductStatus, UpdateSource
from webhook_gateway.models.schemas.shoptree import ShoptreeStockUpdate

HEADERS = {"X-Client-Api-Key": SHOPTREE_KEY}
STOCK_URL = "/shoptree/stock-update"
STATUS_URL = "/shoptree/product-status-update"


def _stock(**overrides):
    item = {
        "reference_id": "PO-1",
        "reference_type": "purchase_order",
        "location_id": "store-1",
        "product_variant_id": "sku-1",
        "in_stock": 42,
        "quantity_changed": 10,
    }
    item.update(overrides)
    return item


def test_stock_batch_is_forwarded_in_order(client, inventory_service):
    batch = [_stock(), _stock(product_variant_id="sku-2", in_stock=7.0, reference_type="stock_take")]
    resp = client.post(STOCK_URL, json=batch, headers=HEADERS)
    assert resp.status_code == 200
    assert resp.json() == {"message": "success"}
    assert [(u.store_id, u.product_variant_id, u.quantity) for u in inventory_service.stock_updates] == [
        ("store-1", "sku-1", 42),
        ("store-1", "sku-2", 7),
    ]
    assert all(u.source == UpdateSource.EXTERNAL for u in inventory_service.stock_updates)


def test_zero_stock_is_not_treated_as_missing(client, inventory_service):
    resp = client.post(STOCK_URL, json=[_stock(in_stock=0, quantity_changed=0)], headers=HEADERS)
    assert resp.status_code == 200
    assert inventory_service.stock_updates[0].quantity == 0


def test_empty_batch_succeeds(client, inventory_service):
    resp = client.post(STOCK_URL, json=[], headers=HEADERS)
    assert resp.status_code == 200
    assert inventory_service.stock_updates == []


def test_fractional_stock_is_rejected(client, inventory_service):
    resp = client.post(STOCK_URL, json=[_stock(in_stock=1.5)], headers=HEADERS)
    assert resp.status_code == 400
    assert resp.json() == {"message": "invalid in stock value"}
    assert inventory_service.stock_updates == []


def test_unknown_reference_type_is_rejected(client, inventory_service):
    resp = client.post(STOCK_URL, json=[_stock(reference_type="gift")], headers=HEADERS)
    assert resp.status_code == 400
    assert resp.json() == {"message": "invalid reference type"}


@pytest.mark.parametrize(
    "field,message",
    [
        ("reference_id", "reference id is required"),
        ("reference_type", "reference type is required"),
        ("location_id", "location id is required"),
        ("product_variant_id", "product variant id is required"),
        ("in_stock", "in stock is required"),
        ("quantity_changed", "quantity changed is required"),
    ],
)
def test_stock_item_required_fields(client, inventory_service, field, message):
    item = _stock()
    del item[field]
    resp = client.post(STOCK_URL, json=[item], headers=HEADERS)
    assert resp.status_code == 400
    assert resp.json() == {"message": message}
    assert inventory_service.stock_updates == []


def test_invalid_item_stops_batch_after_earlier_items(client, inventory_service):
    batch = [_stock(), _stock(location_id=""), _stock(product_variant_id="sku-3")]
    resp = client.post(STOCK_URL, json=batch, headers=HEADERS)
    assert resp.status_code == 400
    assert resp.json() == {"message": "location id is required"}
    assert [u.product_variant_id for u in inventory_service.stock_updates] == ["sku-1"]


def test_stock_rpc_failure(client, inventory_service):
    inventory_service.error = RPCError("inventory.v1.InventoryService", "UpdateStock", "unavailable")
    inventory_service.fail_at = 1
    resp = client.post(STOCK_URL, json=[_stock(), _stock(product_variant_id="sku-2")], headers=HEADERS)
    assert resp.status_code == 500
    assert resp.json() == {"message": "failed to update stock"}
    assert len(inventory_service.stock_updates) == 1


def test_stock_body_must_be_a_list(client):
    resp = client.post(STOCK_URL, json=_stock(), headers=HEADERS)
    assert resp.status_code == 400
    assert resp.json() == {"message": "invalid request data"}


def test_missing_client_api_key(client):
    resp = client.post(STOCK_URL, json=[_stock()])
    assert resp.status_code == 400
    assert resp.json() == {"message": "x client api key is required"}


def test_wrong_client_api_key(client):
    resp = client.post(STOCK_URL, json=[_stock()], headers={"X-Client-Api-Key": "wrong"})
    assert resp.status_code == 400
    assert resp.json() == {"message": "invalid x client api key"}


def test_wrong_content_type(client):
    resp = client.post(STOCK_URL, content=b"[]", headers={**HEADERS, "Content-Type": "application/xml"})
    assert resp.status_code == 400
    assert resp.json() == {"message": "content type should be application/json"}


def test_product_status_batch(client, inventory_service):
    batch = [
        {"location_id": "store-1", "product_variant_id": "sku-1", "enabled": True},
        {"location_id": "store-1", "product_variant_id": "sku-2", "enabled": False},
    ]
    resp = client.post(STATUS_URL, json=batch, headers=HEADERS)
    assert resp.status_code == 200
    assert resp.json() == {"message": "success"}
    assert [u.status for u in inventory_service.status_updates] == [ProductStatus.ENABLED, ProductStatus.DISABLED]
    assert inventory_service.status_updates[0].store_id == "store-1"


@pytest.mark.parametrize(
    "item,message",
    [
        ({"product_variant_id": "sku-1", "enabled": True}, "location id is required"),
        ({"location_id": "store-1", "enabled": True}, "product variant id is required"),
        ({"location_id": "store-1", "product_variant_id": "sku-1"}, "enabled is required"),
    ],
)
def test_product_status_required_fields(client, inventory_service, item, message):
    resp = client.post(STATUS_URL, json=[item], headers=HEADERS)
    assert resp.status_code == 400
    assert resp.json() == {"message": message}
    assert inventory_service.status_updates == []


def test_product_status_rpc_failure(client, inventory_service):
    inventory_service.error = RPCError("inventory.v1.InventoryService", "UpdateStatus", "unavailable")
    resp = client.post(
        STATUS_URL,
        json=[{"location_id": "store-1", "product_variant_id": "sku-1", "enabled": True}],
        headers=HEADERS,
    )
    assert resp.status_code == 500
    assert resp.json() == {"message": "failed to update product variant status"}


def test_to_stock_request_rejects_missing_stock_without_prior_validation():
    item = ShoptreeStockUpdate(location_id="store-1", product_variant_id="sku-1")
    with pytest.raises(CallbackValidationError) as exc:
        to_stock_request(item)
    assert exc.value.message == "in stock is required"
