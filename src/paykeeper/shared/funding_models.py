"""
Shared funding models used across components.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_serializer,
    field_validator,
    model_validator,
)

from .funding_errors import PolicyError

ADDRESS_PATTERN = r"^0x[0-9a-fA-F]{40}$"

# Decision reasons
REASON_PRICE_UNAVAILABLE = "price source unavailable"
REASON_ABOVE_THRESHOLD = "balance above threshold"
REASON_THRESHOLD_BREACHED = "threshold breached"
REASON_ZERO_TOP_UP = "top-up amount rounds to zero"


class DecisionOutcome(str, Enum):
    """Terminal outcome of a funding check."""
    NO_ACTION = "no_action"
    EXECUTE = "execute"


class FundingPolicy(BaseModel):
    """Threshold policy for one payroll contract."""
    model_config = ConfigDict(frozen=True)

    payroll_contract_address: str = Field(
        pattern=ADDRESS_PATTERN, description="Payroll contract address"
    )
    top_up_amount_fiat: Decimal = Field(
        gt=0, allow_inf_nan=False, description="Amount to add when below threshold, in fiat"
    )
    threshold_fiat: Decimal = Field(
        ge=0, allow_inf_nan=False, description="Minimum contract balance, in fiat"
    )

    @classmethod
    def from_raw(
        cls,
        payroll_contract_address: Any,
        top_up_amount_fiat: Any,
        threshold_fiat: Any,
    ) -> "FundingPolicy":
        """
        Build a policy from caller-supplied raw values.

        Raises:
            PolicyError: If any value is missing or malformed
        """
        raw = {
            "payroll_contract_address": payroll_contract_address,
            "top_up_amount_fiat": top_up_amount_fiat,
            "threshold_fiat": threshold_fiat,
        }
        raw = {
            name: value.strip() if isinstance(value, str) else value
            for name, value in raw.items()
        }

        missing = [name for name, value in raw.items() if value is None or value == ""]
        if missing:
            raise PolicyError(f"missing {', '.join(missing)}", field=missing[0])

        try:
            return cls(**raw)
        except ValidationError as e:
            error = e.errors()[0]
            field = ".".join(str(part) for part in error["loc"])
            raise PolicyError(f"{field}: {error['msg']}", field=field) from e


class PriceQuote(BaseModel):
    """Fiat price of one whole unit of the funding asset."""
    model_config = ConfigDict(frozen=True)

    asset: str = Field(description="Asset identifier (e.g., ethereum)")
    fiat_currency: str = Field(default="usd", description="Quote currency")
    fiat_per_unit: Decimal = Field(gt=0, allow_inf_nan=False, description="Fiat value of one unit")
    fetched_at: datetime = Field(default_factory=datetime.utcnow)


class BalanceSnapshot(BaseModel):
    """Contract balance observed at check time."""
    model_config = ConfigDict(frozen=True)

    contract_address: str
    raw_balance: int = Field(ge=0, description="Balance in the smallest on-chain unit")
    block_tag: str = Field(default="latest")
    observed_at: datetime = Field(default_factory=datetime.utcnow)


class FundingInstruction(BaseModel):
    """Unsigned contract call for an external submitter."""
    model_config = ConfigDict(frozen=True)

    target: str = Field(pattern=ADDRESS_PATTERN, description="Contract to call")
    call_data: bytes = Field(description="ABI-encoded call")
    value: int = Field(gt=0, description="Value to attach, in the smallest on-chain unit")

    @field_validator("call_data", mode="before")
    @classmethod
    def parse_hex_call_data(cls, value: Any) -> Any:
        if isinstance(value, str):
            return bytes.fromhex(value[2:] if value.startswith("0x") else value)
        return value

    @field_serializer("call_data")
    def serialize_call_data(self, call_data: bytes) -> str:
        return "0x" + call_data.hex()

    def to_relay_payload(self) -> Dict[str, str]:
        """Call in the {to, data, value} shape relay submitters accept."""
        return {
            "to": self.target,
            "data": "0x" + self.call_data.hex(),
            "value": str(self.value),
        }


class FundingDecision(BaseModel):
    """Result of one funding check."""
    model_config = ConfigDict(frozen=True)

    should_execute: bool
    reason: str
    instruction: Optional[FundingInstruction] = None

    # Inputs the decision was based on
    balance_fiat: Optional[Decimal] = None
    fiat_per_unit: Optional[Decimal] = None

    @model_validator(mode="after")
    def check_instruction(self) -> "FundingDecision":
        if self.should_execute and self.instruction is None:
            raise ValueError("an executing decision requires an instruction")
        if not self.should_execute and self.instruction is not None:
            raise ValueError("a non-executing decision cannot carry an instruction")
        return self

    @property
    def outcome(self) -> DecisionOutcome:
        return DecisionOutcome.EXECUTE if self.should_execute else DecisionOutcome.NO_ACTION

    @classmethod
    def no_action(
        cls,
        reason: str,
        balance_fiat: Optional[Decimal] = None,
        fiat_per_unit: Optional[Decimal] = None,
    ) -> "FundingDecision":
        return cls(
            should_execute=False,
            reason=reason,
            balance_fiat=balance_fiat,
            fiat_per_unit=fiat_per_unit,
        )

    @classmethod
    def execute(
        cls,
        instruction: FundingInstruction,
        balance_fiat: Decimal,
        fiat_per_unit: Decimal,
    ) -> "FundingDecision":
        return cls(
            should_execute=True,
            reason=REASON_THRESHOLD_BREACHED,
            instruction=instruction,
            balance_fiat=balance_fiat,
            fiat_per_unit=fiat_per_unit,
        )


class FundingAssessment(BaseModel):
    """Decision together with the observations it was derived from."""
    model_config = ConfigDict(frozen=True)

    decision: FundingDecision
    quote: Optional[PriceQuote] = None
    balance: Optional[BalanceSnapshot] = None


# Kafka message types
class FundingDecisionMessage(BaseModel):
    """Message published to funding_instructions topic."""
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    service: str = Field(default="paykeeper")
    contract_address: str
    decision: FundingDecision
    quote: Optional[PriceQuote] = None
    balance: Optional[BalanceSnapshot] = None
    trace_id: Optional[str] = None
