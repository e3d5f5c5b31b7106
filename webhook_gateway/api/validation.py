"""
Header checks and validation errors shared by the callback endpoints.

Error messages are returned verbatim to the caller (MileApp/Shoptree show
them in their delivery logs), so they are kept short and stable.
"""
import hmac
from typing import Mapping

JSON_MEDIA_TYPE = "application/json"


class CallbackValidationError(Exception):
    """A callback request failed header or payload validation (HTTP 400)."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


# Headers (Midtrans, Shoptree)
ERR_CONTENT_TYPE_REQUIRED = "content type is required"
ERR_INVALID_CONTENT_TYPE = "content type should be application/json"

# MileApp
ERR_TASK_REF_ID_REQUIRED = "taskRefId is required"
ERR_ORDER_NUMBER_REQUIRED = "order number is required"
ERR_STATUS_REQUIRED = "taskStatus is required"
ERR_INVALID_STATUS = "taskStatus is invalid"
ERR_MILEAPP_CONTENT_TYPE_REQUIRED = "content-type is required"
ERR_MILEAPP_INVALID_CONTENT_TYPE = "invalid content-type"
ERR_X_API_KEY_REQUIRED = "x-api-key is required"
ERR_INVALID_X_API_KEY = "invalid x-api-key"

# Shoptree
ERR_REFERENCE_ID_REQUIRED = "reference id is required"
ERR_REFERENCE_TYPE_REQUIRED = "reference type is required"
ERR_LOCATION_ID_REQUIRED = "location id is required"
ERR_PRODUCT_VARIANT_ID_REQUIRED = "product variant id is required"
ERR_IN_STOCK_REQUIRED = "in stock is required"
ERR_QUANTITY_CHANGED_REQUIRED = "quantity changed is required"
ERR_INVALID_IN_STOCK = "invalid in stock value"
ERR_INVALID_REFERENCE_TYPE = "invalid reference type"
ERR_ENABLED_REQUIRED = "enabled is required"
ERR_X_CLIENT_API_KEY_REQUIRED = "x client api key is required"
ERR_INVALID_X_CLIENT_API_KEY = "invalid x client api key"

ERR_INVALID_REQUEST_DATA = "invalid request data"


def validate_content_type(
    headers: Mapping[str, str],
    required_message: str = ERR_CONTENT_TYPE_REQUIRED,
    invalid_message: str = ERR_INVALID_CONTENT_TYPE,
) -> None:
    """Require an exact ``application/json`` Content-Type."""
    content_type = headers.get("content-type", "")
    if not content_type:
        raise CallbackValidationError(required_message)
    if content_type != JSON_MEDIA_TYPE:
        raise CallbackValidationError(invalid_message)


def validate_api_key(
    headers: Mapping[str, str],
    header_name: str,
    expected: str,
    required_message: str,
    invalid_message: str,
) -> None:
    """Require ``header_name`` to be present and equal to the shared secret."""
    api_key = headers.get(header_name, "")
    if not api_key:
        raise CallbackValidationError(required_message)
    if not expected or not hmac.compare_digest(api_key.encode("utf-8"), expected.encode("utf-8")):
        raise CallbackValidationError(invalid_message)


__all__ = [
    "CallbackValidationError",
    "validate_content_type",
    "validate_api_key",
]
