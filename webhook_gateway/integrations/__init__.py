"""
Integrations package initialization.
Exports the Midtrans provider client and the storefront RPC clients.
"""
from .midtrans import (
    MidtransStatusClient,
    TransactionLookupRegistry,
    validate_callback_signature,
)
from .storefront_rpc import (
    InventoryServiceClient,
    OrderServiceClient,
    RPCError,
    StorefrontRPCChannel,
    TaskServiceClient,
)

__all__ = [
    "MidtransStatusClient",
    "TransactionLookupRegistry",
    "validate_callback_signature",
    "InventoryServiceClient",
    "OrderServiceClient",
    "RPCError",
    "StorefrontRPCChannel",
    "TaskServiceClient",
]
