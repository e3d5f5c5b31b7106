"""
Pydantic schemas for messages exchanged with the internal storefront services.

Field names are serialized in lowerCamelCase, matching the JSON mapping the
order/task/inventory services expose.
"""
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from webhook_gateway.models.enums import (
    OrderState,
    OrderTaskState,
    OrderTaskType,
    ProductStatus,
    UpdateSource,
)


class StorefrontMessage(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class OrderTask(StorefrontMessage):
    task_id: str = ""
    order_id: str = ""
    task_type: OrderTaskType = OrderTaskType.UNSPECIFIED
    state: OrderTaskState = OrderTaskState.UNSPECIFIED


class GetOrderTaskRequest(StorefrontMessage):
    task_id: Optional[str] = None
    order_id: Optional[str] = None


class GetOrderTaskResponse(StorefrontMessage):
    tasks: List[OrderTask] = Field(default_factory=list)


class UpdateOrderTaskRequest(StorefrontMessage):
    task_id: str
    state: OrderTaskState
    additional_data: Optional[Dict[str, str]] = None


class Order(StorefrontMessage):
    order_id: str = ""
    state: OrderState = OrderState.UNSPECIFIED


class GetOrderRequest(StorefrontMessage):
    order_id: str


class UpdateStockRequest(StorefrontMessage):
    store_id: str
    product_variant_id: str
    quantity: int
    source: UpdateSource = UpdateSource.EXTERNAL


class UpdateStatusRequest(StorefrontMessage):
    store_id: str
    product_variant_id: str
    status: ProductStatus
    source: UpdateSource = UpdateSource.EXTERNAL
