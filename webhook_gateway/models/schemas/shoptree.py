"""
Pydantic schemas for Shoptree inventory callbacks.

Numeric/boolean fields are optional so that "missing" can be told apart from
zero/false during validation.
"""
from typing import Optional
from pydantic import BaseModel, ConfigDict


class ShoptreeStockUpdate(BaseModel):
    reference_id: str = ""
    reference_type: str = ""
    location_id: str = ""
    product_variant_id: str = ""
    in_stock: Optional[float] = None
    quantity_changed: Optional[float] = None

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "reference_id": "PO-1001",
            "reference_type": "purchase_order",
            "location_id": "store-jkt-01",
            "product_variant_id": "sku-123",
            "in_stock": 42,
            "quantity_changed": 10,
        }
    })


class ShoptreeProductStatusUpdate(BaseModel):
    location_id: str = ""
    product_variant_id: str = ""
    enabled: Optional[bool] = None
