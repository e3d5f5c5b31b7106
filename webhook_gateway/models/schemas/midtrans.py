"""
Pydantic schemas for Midtrans payment notifications.

The same shape is used for the HTTP notification body and for the response
of the transaction status endpoint. Midtrans sends every field as a string.
"""
from pydantic import AliasChoices, AliasGenerator, BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel


def _snake_or_camel(field_name: str) -> AliasChoices:
    return AliasChoices(field_name, to_camel(field_name))


class MidtransTransaction(BaseModel):
    """Transaction data as reported by Midtrans.

    ``order_id`` carries the storefront payment *task* id; the order id is
    resolved through the task service.
    """
    # Timestamp of transaction in ISO 8601 format, GMT+7.
    transaction_time: str = ""
    transaction_status: str = ""
    transaction_id: str = ""
    status_message: str = ""
    status_code: str = ""
    # sha512(order_id + status_code + gross_amount + server_key)
    signature_key: str = ""
    settlement_time: str = ""
    payment_type: str = ""
    order_id: str = ""
    merchant_id: str = ""
    # Total amount in IDR, e.g. "10000.00".
    gross_amount: str = ""
    # accept | challenge | deny, empty when FDS did not run.
    fraud_status: str = ""
    currency: str = ""

    @field_validator("*", mode="before")
    @classmethod
    def null_as_empty(cls, value):
        # Midtrans sends null for fields that do not apply (e.g. fraud_status).
        return "" if value is None else value

    model_config = ConfigDict(
        alias_generator=AliasGenerator(validation_alias=_snake_or_camel),
        populate_by_name=True,
        coerce_numbers_to_str=True,
        json_schema_extra={
            "example": {
                "transaction_time": "2022-06-21 14:12:10",
                "transaction_status": "settlement",
                "transaction_id": "0b7b7e4c-5a1d-4c9a-9d4e-4a2f3d3f7c10",
                "status_message": "midtrans payment notification",
                "status_code": "200",
                "signature_key": "<sha512 hex>",
                "settlement_time": "2022-06-21 14:13:02",
                "payment_type": "gopay",
                "order_id": "T1",
                "merchant_id": "G123456789",
                "gross_amount": "10000.00",
                "fraud_status": "accept",
                "currency": "IDR",
            }
        },
    )


class MidtransNotification(MidtransTransaction):
    """Inbound HTTP notification. Only used to identify the transaction and
    to pass the signature gate; the status lookup result drives decisions."""
