"""
Clients for the internal storefront services (order, task, inventory).

Calls are unary RPCs carried as JSON over HTTP POST to
``{base_url}/{package}.{Service}/{Method}``. Every call carries the
storefront ``x-api-key`` header.
"""
import asyncio
from typing import Any, Dict, List, Optional

import aiohttp
from pydantic import ValidationError

from webhook_gateway.config import STOREFRONT_RPC_SETTINGS
from webhook_gateway.models.schemas.storefront import (
    GetOrderRequest,
    GetOrderTaskRequest,
    GetOrderTaskResponse,
    Order,
    OrderTask,
    UpdateOrderTaskRequest,
    UpdateStatusRequest,
    UpdateStockRequest,
    StorefrontMessage,
)
from webhook_gateway.utils import get_logger

logger = get_logger(__name__)

API_KEY_HEADER = "x-api-key"


class RPCError(Exception):
    """A storefront RPC failed (transport error or non-2xx reply)."""

    def __init__(self, service: str, method: str, message: str, status: Optional[int] = None):
        super().__init__(f"{service}/{method}: {message}")
        self.service = service
        self.method = method
        self.status = status


class StorefrontRPCChannel:
    """Shared transport for all storefront service clients."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        base_url: Optional[str] = None,
        auth_key: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
    ):
        self.session = session
        self.base_url = (base_url or str(STOREFRONT_RPC_SETTINGS["base_url"])).rstrip("/")
        self.auth_key = auth_key if auth_key is not None else str(STOREFRONT_RPC_SETTINGS["auth_key"])
        self.timeout = aiohttp.ClientTimeout(
            total=float(timeout_seconds or STOREFRONT_RPC_SETTINGS["timeout_seconds"])
        )

    async def call(self, service: str, method: str, message: StorefrontMessage) -> Dict[str, Any]:
        url = f"{self.base_url}/{service}/{method}"
        logger.debug("Calling storefront RPC", service=service, method=method)
        headers = {
            "Content-Type": "application/json",
            API_KEY_HEADER: self.auth_key,
        }
        try:
            async with self.session.post(
                url, json=message.to_wire(), headers=headers, timeout=self.timeout
            ) as response:
                if response.status >= 300:
                    body = await response.text()
                    raise RPCError(service, method, body or response.reason or "error", status=response.status)
                if response.content_length == 0:
                    return {}
                data = await response.json(content_type=None)
        except asyncio.TimeoutError:
            raise RPCError(service, method, "deadline exceeded")
        except aiohttp.ClientError as e:
            raise RPCError(service, method, str(e))
        except ValueError as e:
            raise RPCError(service, method, f"invalid response body: {e}")

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise RPCError(service, method, "response is not a JSON object")
        return data


class TaskServiceClient:
    service = "task.v1.TaskService"

    def __init__(self, channel: StorefrontRPCChannel):
        self.channel = channel

    async def get_order_task(
        self, *, task_id: Optional[str] = None, order_id: Optional[str] = None
    ) -> List[OrderTask]:
        """Return all tasks of the order identified by ``task_id`` or ``order_id``."""
        data = await self.channel.call(
            self.service, "GetOrderTask", GetOrderTaskRequest(task_id=task_id, order_id=order_id)
        )
        try:
            return GetOrderTaskResponse.model_validate(data).tasks
        except ValidationError as e:
            raise RPCError(self.service, "GetOrderTask", f"malformed response: {e}")

    async def update_order_task(self, request: UpdateOrderTaskRequest) -> None:
        await self.channel.call(self.service, "UpdateOrderTask", request)


class OrderServiceClient:
    service = "order.v1.OrderService"

    def __init__(self, channel: StorefrontRPCChannel):
        self.channel = channel

    async def get(self, order_id: str) -> Order:
        data = await self.channel.call(self.service, "Get", GetOrderRequest(order_id=order_id))
        # GetResponse { orderData: { order: {...} } }
        order = (data.get("orderData") or {}).get("order") or {}
        try:
            return Order.model_validate(order)
        except ValidationError as e:
            raise RPCError(self.service, "Get", f"malformed response: {e}")


class InventoryServiceClient:
    service = "inventory.v1.InventoryService"

    def __init__(self, channel: StorefrontRPCChannel):
        self.channel = channel

    async def update_stock(self, request: UpdateStockRequest) -> None:
        await self.channel.call(self.service, "UpdateStock", request)

    async def update_status(self, request: UpdateStatusRequest) -> None:
        await self.channel.call(self.service, "UpdateStatus", request)


__all__ = [
    "RPCError",
    "StorefrontRPCChannel",
    "TaskServiceClient",
    "OrderServiceClient",
    "InventoryServiceClient",
]
