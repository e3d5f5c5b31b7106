"""Central Enum definitions for the internal services' states and the
external providers' vocabularies.

Internal enums mirror the storefront service contracts; values are the wire
names those services accept over RPC.
"""
from __future__ import annotations
import enum


# ------------------------- Storefront (internal) ------------------------- #

class OrderTaskType(str, enum.Enum):
    UNSPECIFIED = "ORDER_TASK_TYPE_UNSPECIFIED"
    PICKING = "ORDER_TASK_TYPE_PICKING"
    PACKING = "ORDER_TASK_TYPE_PACKING"
    SHIPPING = "ORDER_TASK_TYPE_SHIPPING"
    DELIVERY = "ORDER_TASK_TYPE_DELIVERY"
    PAYMENT = "ORDER_TASK_TYPE_PAYMENT"


class OrderTaskState(str, enum.Enum):
    UNSPECIFIED = "ORDER_TASK_STATE_UNSPECIFIED"
    PENDING = "ORDER_TASK_STATE_PENDING"
    ONGOING = "ORDER_TASK_STATE_ONGOING"
    SUCCESS = "ORDER_TASK_STATE_SUCCESS"
    FAILED = "ORDER_TASK_STATE_FAILED"


class OrderState(str, enum.Enum):
    UNSPECIFIED = "ORDER_STATE_UNSPECIFIED"
    PENDING = "ORDER_STATE_PENDING"
    PAID = "ORDER_STATE_PAID"
    PROCESSING = "ORDER_STATE_PROCESSING"
    CANCELLED = "ORDER_STATE_CANCELLED"
    DONE = "ORDER_STATE_DONE"


TERMINAL_ORDER_STATES = frozenset({OrderState.PAID, OrderState.CANCELLED, OrderState.DONE})


class UpdateSource(str, enum.Enum):
    UNSPECIFIED = "UPDATE_SOURCE_UNSPECIFIED"
    INTERNAL = "UPDATE_SOURCE_INTERNAL"
    EXTERNAL = "UPDATE_SOURCE_EXTERNAL"


class ProductStatus(str, enum.Enum):
    UNSPECIFIED = "PRODUCT_STATUS_UNSPECIFIED"
    ENABLED = "PRODUCT_STATUS_ENABLED"
    DISABLED = "PRODUCT_STATUS_DISABLED"


# ------------------------------- Midtrans -------------------------------- #

class TransactionStatus(str, enum.Enum):
    PENDING = "pending"
    AUTHORIZED = "authorized"
    CAPTURE = "capture"
    SETTLEMENT = "settlement"
    DENY = "deny"
    CANCEL = "cancel"
    REFUND = "refund"
    PARTIAL_REFUND = "partial_refund"
    CHARGEBACK = "chargeback"
    PARTIAL_CHARGEBACK = "partial_chargeback"
    EXPIRE = "expire"
    FAILURE = "failure"


# Raw (lowercased) status strings as reported by Midtrans.
SUCCESSFUL_TRANSACTION_STATUSES = frozenset({TransactionStatus.CAPTURE.value, TransactionStatus.SETTLEMENT.value})
FAILED_TRANSACTION_STATUSES = frozenset({
    TransactionStatus.EXPIRE.value,
    TransactionStatus.FAILURE.value,
    TransactionStatus.CANCEL.value,
    TransactionStatus.DENY.value,
})

FRAUD_STATUS_ACCEPT = "accept"


class PaymentMethod(str, enum.Enum):
    VIRTUAL_ACCOUNT = "bank_transfer"
    GOPAY = "gopay"


# ------------------------------- MileApp --------------------------------- #

class MileappTaskType(str, enum.Enum):
    PICKING = "picking"
    PACKING = "packing"
    SHIPPING = "shipping"
    DELIVERY = "delivery"

    @property
    def order_task_type(self) -> OrderTaskType:
        return OrderTaskType[self.name]


class MileappTaskStatus(str, enum.Enum):
    ONGOING = "ongoing"
    DONE = "done"


# ------------------------------- Shoptree -------------------------------- #

class ShoptreeReferenceType(str, enum.Enum):
    INTERNAL_ORDER = "internal_order"
    PURCHASE_ORDER = "purchase_order"
    TRANSFER_ORDER = "transfer_order"
    STOCK_TAKE = "stock_take"
    STOCK_ADJUSTMENT = "stock_adjustment"
    PREPARATION = "preparation"
    SEPARATION = "separation"
    ORDER = "order"
    ORDER_MODIFIER = "order_modifier"
    ORDER_COMPOSITE = "order_composite"
    ORDER_MODIFIER_COMPOSITE = "order_modifier_composite"


__all__ = [
    "OrderTaskType",
    "OrderTaskState",
    "OrderState",
    "TERMINAL_ORDER_STATES",
    "UpdateSource",
    "ProductStatus",
    "TransactionStatus",
    "SUCCESSFUL_TRANSACTION_STATUSES",
    "FAILED_TRANSACTION_STATUSES",
    "FRAUD_STATUS_ACCEPT",
    "PaymentMethod",
    "MileappTaskType",
    "MileappTaskStatus",
    "ShoptreeReferenceType",
]
