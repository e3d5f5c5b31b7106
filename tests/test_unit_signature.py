import hashlib

import pytest

from webhook_gateway.api.validation import CallbackValidationError, validate_api_key, validate_content_type
from webhook_gateway.integrations.midtrans import (
    InvalidSignatureError,
    TransactionLookupRegistry,
    UnsupportedPaymentMethodError,
    compute_signature,
    validate_callback_signature,
)


def test_signature_is_sha512_of_concatenated_fields():
    expected = hashlib.sha512(b"T120010000.00secret").hexdigest()
    assert compute_signature("T1", "200", "10000.00", "secret") == expected


def test_valid_signature_passes_case_insensitively():
    sig = compute_signature("T1", "200", "10000.00", "secret")
    validate_callback_signature(sig, "T1", "200", "10000.00", "secret")
    validate_callback_signature(sig.upper(), "T1", "200", "10000.00", "secret")


@pytest.mark.parametrize(
    "order_id,status_code,gross_amount,server_key",
    [
        ("T2", "200", "10000.00", "secret"),
        ("T1", "201", "10000.00", "secret"),
        ("T1", "200", "10000", "secret"),
        ("T1", "200", "10000.00", "other"),
    ],
)
def test_any_changed_field_fails(order_id, status_code, gross_amount, server_key):
    sig = compute_signature("T1", "200", "10000.00", "secret")
    with pytest.raises(InvalidSignatureError):
        validate_callback_signature(sig, order_id, status_code, gross_amount, server_key)


def test_empty_or_non_ascii_signature_fails():
    with pytest.raises(InvalidSignatureError):
        validate_callback_signature("", "T1", "200", "10000.00", "secret")
    with pytest.raises(InvalidSignatureError):
        validate_callback_signature("ñ" * 128, "T1", "200", "10000.00", "secret")


def test_registry_rejects_unknown_method():
    registry = TransactionLookupRegistry({"gopay": object()})
    assert registry.resolve("gopay") is registry.lookups["gopay"]
    with pytest.raises(UnsupportedPaymentMethodError) as exc:
        registry.resolve("credit_card")
    assert exc.value.payment_type == "credit_card"


def test_content_type_must_be_exact():
    validate_content_type({"content-type": "application/json"})
    with pytest.raises(CallbackValidationError) as exc:
        validate_content_type({})
    assert exc.value.message == "content type is required"
    with pytest.raises(CallbackValidationError) as exc:
        validate_content_type({"content-type": "application/json; charset=utf-8"})
    assert exc.value.message == "content type should be application/json"


def test_api_key_rejected_when_secret_unset():
    with pytest.raises(CallbackValidationError) as exc:
        validate_api_key({"X-Api-Key": "anything"}, "X-Api-Key", "", "key required", "key invalid")
    assert exc.value.message == "key invalid"


def test_api_key_messages_are_caller_supplied():
    with pytest.raises(CallbackValidationError) as exc:
        validate_api_key({}, "X-Client-Api-Key", "secret", "x client api key is required", "bad")
    assert exc.value.message == "x client api key is required"
    validate_api_key({"X-Client-Api-Key": "secret"}, "X-Client-Api-Key", "secret", "missing", "bad")
