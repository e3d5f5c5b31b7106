"""
Midtrans payment gateway integration.

Contains the notification signature check and the transaction status
lookup used to fetch the authoritative state of a transaction. Lookups are
exposed per payment method through ``TransactionLookupRegistry`` so adding a
method is a local change.
"""
import asyncio
import base64
import hashlib
import hmac
from abc import ABC, abstractmethod
from typing import Dict, Optional

import aiohttp
from pydantic import ValidationError

from webhook_gateway.config import MIDTRANS_SETTINGS
from webhook_gateway.models.enums import PaymentMethod
from webhook_gateway.models.schemas.midtrans import MidtransTransaction
from webhook_gateway.utils import get_logger

logger = get_logger(__name__)


class InvalidSignatureError(Exception):
    """Notification signature does not match the expected SHA-512 digest."""


class UnsupportedPaymentMethodError(Exception):
    def __init__(self, payment_type: str):
        super().__init__(f"unsupported payment method: {payment_type!r}")
        self.payment_type = payment_type


class TransactionLookupError(Exception):
    """The status endpoint could not produce a usable transaction."""


def compute_signature(order_id: str, status_code: str, gross_amount: str, server_key: str) -> str:
    """
    Compute the Midtrans notification signature.

    Midtrans signs notifications with
    ``SHA512(order_id + status_code + gross_amount + server_key)`` hex-encoded.
    """
    raw = f"{order_id}{status_code}{gross_amount}{server_key}".encode("utf-8")
    return hashlib.sha512(raw).hexdigest()


def validate_callback_signature(
    signature_key: str,
    order_id: str,
    status_code: str,
    gross_amount: str,
    server_key: str,
) -> None:
    """
    Raise ``InvalidSignatureError`` unless ``signature_key`` matches.

    The comparison is constant time and case-insensitive on the hex digest.
    """
    if not signature_key:
        raise InvalidSignatureError("signature key is empty")
    expected = compute_signature(order_id, status_code, gross_amount, server_key)
    if not hmac.compare_digest(expected.encode("utf-8"), signature_key.strip().lower().encode("utf-8")):
        raise InvalidSignatureError("invalid signature")


def basic_authorization(server_key: str) -> str:
    """Midtrans API auth: the server key as username with an empty password."""
    token = base64.b64encode(f"{server_key}:".encode("utf-8")).decode("ascii")
    return f"Basic {token}"


class MidtransStatusClient:
    """Thin aiohttp client for ``GET /v2/{order_id}/status``."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        server_key: Optional[str] = None,
        get_status_url: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
    ):
        self.session = session
        self.server_key = server_key if server_key is not None else str(MIDTRANS_SETTINGS["server_key"])
        self.get_status_url = get_status_url or str(MIDTRANS_SETTINGS["get_status_url"])
        self.timeout = aiohttp.ClientTimeout(
            total=float(timeout_seconds or MIDTRANS_SETTINGS["status_lookup_timeout_seconds"])
        )
        self.logger = get_logger("integration.midtrans")

    def _status_url(self, order_id: str) -> str:
        return self.get_status_url.replace("{order_id}", order_id)

    async def get_transaction_status(self, order_id: str) -> MidtransTransaction:
        url = self._status_url(order_id)
        headers = {
            "Accept": "application/json",
            "Authorization": basic_authorization(self.server_key),
        }

        self.logger.debug("Requesting transaction status", order_id=order_id, url=url)
        try:
            async with self.session.get(url, headers=headers, timeout=self.timeout) as response:
                if response.status != 200:
                    self.logger.error(
                        "Midtrans status request failed",
                        order_id=order_id,
                        status_code=response.status,
                    )
                    raise TransactionLookupError(f"midtrans returned HTTP {response.status}")
                data = await response.json(content_type=None)
        except asyncio.TimeoutError:
            self.logger.error("Midtrans status request timed out", order_id=order_id)
            raise TransactionLookupError("midtrans status request timed out")
        except aiohttp.ClientError as e:
            self.logger.error("Midtrans client error", order_id=order_id, error=str(e))
            raise TransactionLookupError(f"midtrans client error: {e}")
        except ValueError as e:
            self.logger.error("Midtrans returned invalid JSON", order_id=order_id, error=str(e))
            raise TransactionLookupError("midtrans returned invalid JSON")

        if not isinstance(data, dict) or not data.get("transaction_status"):
            self.logger.error("Invalid Midtrans status response format", order_id=order_id, response_data=data)
            raise TransactionLookupError(
                f"midtrans status response has no transaction status: {data!r}"
            )

        try:
            transaction = MidtransTransaction.model_validate(data)
        except ValidationError as e:
            self.logger.error("Malformed Midtrans status response", order_id=order_id, error=str(e))
            raise TransactionLookupError(f"malformed midtrans status response: {e}")
        self.logger.info(
            "Midtrans transaction status fetched",
            order_id=order_id,
            transaction_status=transaction.transaction_status,
            fraud_status=transaction.fraud_status,
        )
        return transaction


class TransactionStatusLookup(ABC):
    """Fetch the authoritative transaction status for one payment method."""

    payment_method: PaymentMethod

    @abstractmethod
    async def get_transaction_status(self, order_id: str) -> MidtransTransaction:
        pass


class VirtualAccountStatusLookup(TransactionStatusLookup):
    """Bank transfer (virtual account). Final status arrives as ``capture``/``settlement``."""

    payment_method = PaymentMethod.VIRTUAL_ACCOUNT

    def __init__(self, client: MidtransStatusClient):
        self.client = client

    async def get_transaction_status(self, order_id: str) -> MidtransTransaction:
        return await self.client.get_transaction_status(order_id)


class GopayStatusLookup(TransactionStatusLookup):
    """GoPay e-wallet. Final status arrives as ``settlement``."""

    payment_method = PaymentMethod.GOPAY

    def __init__(self, client: MidtransStatusClient):
        self.client = client

    async def get_transaction_status(self, order_id: str) -> MidtransTransaction:
        return await self.client.get_transaction_status(order_id)


class TransactionLookupRegistry:
    """Maps a notification's ``payment_type`` to its status lookup."""

    def __init__(self, lookups: Dict[str, TransactionStatusLookup]):
        self.lookups = dict(lookups)

    @classmethod
    def for_client(cls, client: MidtransStatusClient) -> "TransactionLookupRegistry":
        return cls({
            PaymentMethod.VIRTUAL_ACCOUNT.value: VirtualAccountStatusLookup(client),
            PaymentMethod.GOPAY.value: GopayStatusLookup(client),
        })

    def resolve(self, payment_type: str) -> TransactionStatusLookup:
        lookup = self.lookups.get(payment_type)
        if lookup is None:
            logger.error(
                "Unsupported payment method",
                payment_type=payment_type,
                supported_methods=sorted(self.lookups.keys()),
            )
            raise UnsupportedPaymentMethodError(payment_type)
        return lookup


__all__ = [
    "InvalidSignatureError",
    "UnsupportedPaymentMethodError",
    "TransactionLookupError",
    "compute_signature",
    "validate_callback_signature",
    "basic_authorization",
    "MidtransStatusClient",
    "TransactionStatusLookup",
    "VirtualAccountStatusLookup",
    "GopayStatusLookup",
    "TransactionLookupRegistry",
]
