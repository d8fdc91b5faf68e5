"""Request/response contracts for the HTTP API.

Amounts cross the boundary as decimal strings of base units: JSON numbers
cannot carry 18-decimal values without losing precision.
"""

import re
from typing import Optional

from pydantic import BaseModel, Field, field_validator

ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")


def parse_base_units(v, allow_zero: bool = True) -> str:
    """Validate an integer base-unit amount given as a string (or int)."""
    if isinstance(v, bool) or not isinstance(v, (str, int)):
        raise ValueError("Amount must be a string of base units")
    text = str(v).strip()
    if not text.isdigit():
        raise ValueError(f"Invalid base-unit amount: {v!r}")
    if not allow_zero and int(text) == 0:
        raise ValueError("Amount must be greater than zero")
    return str(int(text))


def validate_address(v: str) -> str:
    """Validate and normalize a 0x-prefixed 20-byte hex address."""
    v = v.strip()
    if not ADDRESS_RE.match(v):
        raise ValueError(f"Invalid address: {v}")
    return v.lower()


class AmountRequest(BaseModel):
    """Request carrying a single amount."""

    amount: str = Field(..., description="Amount in base units")
    from_address: Optional[str] = Field(None, description="Funding address (deposits only)")

    @field_validator("amount", mode="before")
    @classmethod
    def validate_amount(cls, v) -> str:
        return parse_base_units(v)

    @field_validator("from_address")
    @classmethod
    def validate_from(cls, v: Optional[str]) -> Optional[str]:
        return validate_address(v) if v is not None else None


class SendRequest(BaseModel):
    """Transfer out of a proxy account."""

    to: str = Field(..., description="Destination address")
    amount: str = Field(..., description="Amount in base units")

    @field_validator("to")
    @classmethod
    def validate_to(cls, v: str) -> str:
        return validate_address(v)

    @field_validator("amount", mode="before")
    @classmethod
    def validate_amount(cls, v) -> str:
        return parse_base_units(v)


class SwapRequest(BaseModel):
    """Swap with a caller-supplied minimum output."""

    amount_in: str = Field(..., description="Input amount in base units")
    min_amount_out: str = Field(default="0", description="Minimum acceptable output")

    @field_validator("amount_in", "min_amount_out", mode="before")
    @classmethod
    def validate_amounts(cls, v) -> str:
        return parse_base_units(v)


class LiquidityRequest(BaseModel):
    """Operator move of a provider's balances into the pool reserves."""

    provider: str = Field(..., description="Address whose balances fund the pool")
    native_amount: str = Field(default="0", description="Native asset in base units")
    token_amount: str = Field(default="0", description="Token in base units")

    @field_validator("provider")
    @classmethod
    def validate_provider(cls, v: str) -> str:
        return validate_address(v)

    @field_validator("native_amount", "token_amount", mode="before")
    @classmethod
    def validate_amounts(cls, v) -> str:
        return parse_base_units(v)


class CreditRequest(BaseModel):
    """Operator funding of an external address."""

    address: str
    asset: str
    amount: str = Field(..., description="Amount in base units")

    @field_validator("address")
    @classmethod
    def validate_to(cls, v: str) -> str:
        return validate_address(v)

    @field_validator("asset")
    @classmethod
    def validate_asset(cls, v: str) -> str:
        return v.strip().upper()

    @field_validator("amount", mode="before")
    @classmethod
    def validate_amount(cls, v) -> str:
        return parse_base_units(v, allow_zero=False)


class PriceAnswerRequest(BaseModel):
    """New raw answer for the operator-driven feed, in the feed's decimals.

    Non-positive answers are accepted so the oracle's rejection path can be
    exercised; the oracle refuses them on read.
    """

    answer: str = Field(..., description="Signed integer answer")
    updated_at: Optional[int] = Field(None, description="Unix time of the round (default now)")

    @field_validator("answer", mode="before")
    @classmethod
    def validate_answer(cls, v) -> str:
        if isinstance(v, bool) or not isinstance(v, (str, int)):
            raise ValueError("Answer must be an integer string")
        text = str(v).strip()
        if not text.lstrip("-").isdigit():
            raise ValueError(f"Invalid answer: {v!r}")
        return str(int(text))


class PriceAnswerResponse(BaseModel):
    """Round opened by an operator price update."""

    feed: str
    round_id: int
    answer: str
    decimals: int
    updated_at: int


class WalletResponse(BaseModel):
    """Proxy account with balances."""

    address: str
    owner: str
    native_asset: str
    native_balance: str
    token_asset: str
    token_balance: str


class WalletListResponse(BaseModel):
    """Owner's proxy accounts in creation order."""

    owner: str
    wallets: list[str]


class BalanceResponse(BaseModel):
    """Balance after an operation."""

    address: str
    asset: str
    balance: str


class SwapResponse(BaseModel):
    """Result of an executed swap."""

    caller: str
    asset_in: str
    amount_in: str
    asset_out: str
    amount_out: str


class QuoteResponse(BaseModel):
    """Read-only quote."""

    asset_in: str
    amount_in: str
    asset_out: str
    amount_out: str
    price: str
    price_decimals: int


class PoolResponse(BaseModel):
    """Pool reserves."""

    address: str
    native_asset: str
    native_reserve: str
    token_asset: str
    token_reserve: str


class PriceResponse(BaseModel):
    """Normalized oracle price."""

    feed: str
    price: str
    decimals: int
    display: str
    round_id: int
    updated_at: int
    raw_answer: str
    raw_decimals: int


class ErrorResponse(BaseModel):
    """Rejected operation."""

    error: str
    detail: str
