"""
Pydantic schemas for request payloads.

Amount bounds are not hard-coded: they are passed in through the validation
context so the configured limits apply. Every violated constraint is reported,
not only the first.
"""

from typing import Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    StrictInt,
    ValidationInfo,
    field_validator,
)
from pydantic import ValidationError as PydanticValidationError

from onramp.domain.tokens import SUPPORTED_TOKENS, is_valid_wallet_address
from onramp.errors import ValidationError

FIELD_NAMES = {
    "token_symbol": "tokenSymbol",
    "amount_fiat_minor": "amountFiatMinorUnits",
    "wallet_address": "walletAddress",
    "email": "email",
}


class QuoteRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    token_symbol: str = Field(validation_alias=AliasChoices("tokenSymbol", "token_symbol"))
    amount_fiat_minor: StrictInt = Field(
        validation_alias=AliasChoices("amountFiatMinorUnits", "amountNgn", "amount_fiat_minor")
    )

    @field_validator("token_symbol")
    @classmethod
    def supported_symbol(cls, value: str) -> str:
        symbol = value.upper()
        if symbol not in SUPPORTED_TOKENS:
            raise ValueError(f"Unsupported token. Choose one of: {', '.join(SUPPORTED_TOKENS)}")
        return symbol

    @field_validator("amount_fiat_minor")
    @classmethod
    def within_limits(cls, value: int, info: ValidationInfo) -> int:
        limits = (info.context or {}).get("limits")
        if limits is None:
            return value
        if value < limits.minimum:
            raise ValueError(f"Amount must be at least {limits.minimum} kobo")
        if value > limits.maximum:
            raise ValueError(f"Amount must not exceed {limits.maximum} kobo")
        return value


class PurchaseRequest(QuoteRequest):
    wallet_address: str = Field(validation_alias=AliasChoices("walletAddress", "wallet_address"))
    email: Optional[EmailStr] = None

    @field_validator("wallet_address")
    @classmethod
    def starknet_address(cls, value: str) -> str:
        if not is_valid_wallet_address(value):
            raise ValueError("Wallet address must be 0x followed by 64 hexadecimal characters")
        return value


def _violations(exc: PydanticValidationError):
    violations = []
    for err in exc.errors():
        loc = err.get("loc") or ("body",)
        name = str(loc[0])
        message = err["msg"]
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        violations.append({"field": FIELD_NAMES.get(name, name), "message": message})
    return violations


def parse_request(schema, payload, limits=None):
    """Validate ``payload`` against ``schema`` or raise ``ValidationError`` listing every violation."""
    if not isinstance(payload, dict):
        raise ValidationError([{"field": "body", "message": "Request body must be a JSON object"}])
    try:
        return schema.model_validate(payload, context={"limits": limits})
    except PydanticValidationError as exc:
        raise ValidationError(_violations(exc)) from None
