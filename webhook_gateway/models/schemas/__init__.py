"""
Schemas package initialization.
Payload shapes for inbound callbacks and outbound storefront RPC messages.
"""
from .base import MessageResponse
from .midtrans import MidtransNotification, MidtransTransaction
from .mileapp import MileappStatusUpdate, MileappUserVar, MileappAssignee
from .shoptree import ShoptreeStockUpdate, ShoptreeProductStatusUpdate
from .storefront import (
    Order,
    OrderTask,
    UpdateOrderTaskRequest,
    UpdateStockRequest,
    UpdateStatusRequest,
)

__all__ = [
    "MessageResponse",
    "MidtransNotification",
    "MidtransTransaction",
    "MileappStatusUpdate",
    "MileappUserVar",
    "MileappAssignee",
    "ShoptreeStockUpdate",
    "ShoptreeProductStatusUpdate",
    "Order",
    "OrderTask",
    "UpdateOrderTaskRequest",
    "UpdateStockRequest",
    "UpdateStatusRequest",
]
