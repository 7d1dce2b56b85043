"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Union

ZERO = Decimal("0")


class SenderRole(str, Enum):
    USER = "user"
    AGENT = "agent"


class TransferScope(str, Enum):
    NATIONAL = "national"
    INTERNATIONAL = "international"


class OperationType(str, Enum):
    TRANSFER = "transfer"
    WITHDRAWAL = "withdrawal"


@dataclass(frozen=True)
class TransferRequest:
    """Transfer as submitted by the caller, amounts in base currency"""

    amount: Decimal
    sender_id: str
    sender_role: SenderRole
    sender_country: str
    recipient_identifier: str  # phone or email
    recipient_country: str
    recipient_full_name: str

    @property
    def recipient_is_email(self) -> bool:
        return "@" in self.recipient_identifier


@dataclass(frozen=True)
class FeeQuote:
    """Fee charged to the sender and how it splits between agent and platform"""

    amount: Decimal
    fee_amount: Decimal
    rate: Decimal  # fraction, 0.01 == 1%
    agent_commission: Decimal
    money_flow_commission: Decimal
    scope: TransferScope

    @property
    def total(self) -> Decimal:
        return self.amount + self.fee_amount

    @property
    def rate_percent(self) -> Decimal:
        return self.rate * 100


@dataclass(frozen=True)
class CommissionRates:
    """Agent and enterprise shares of an operation amount"""

    agent: Decimal
    enterprise: Decimal


@dataclass(frozen=True)
class CommissionRecord:
    """One historical operation feeding commission totals"""

    operation_type: OperationType
    amount: Decimal
    fee: Decimal = ZERO
    role: Optional[str] = None
    created_at: Optional[datetime] = None
    status: Optional[str] = None


@dataclass(frozen=True)
class CommissionSummary:
    """Aggregated commissions for an agent and for the platform"""

    agent_transfer_commission: Decimal = ZERO
    agent_withdrawal_commission: Decimal = ZERO
    enterprise_transfer_commission: Decimal = ZERO
    enterprise_withdrawal_commission: Decimal = ZERO

    @property
    def agent_total(self) -> Decimal:
        return self.agent_transfer_commission + self.agent_withdrawal_commission

    @property
    def enterprise_total(self) -> Decimal:
        return self.enterprise_transfer_commission + self.enterprise_withdrawal_commission

    def __add__(self, other: "CommissionSummary") -> "CommissionSummary":
        if not isinstance(other, CommissionSummary):
            return NotImplemented
        return CommissionSummary(
            agent_transfer_commission=self.agent_transfer_commission + other.agent_transfer_commission,
            agent_withdrawal_commission=self.agent_withdrawal_commission + other.agent_withdrawal_commission,
            enterprise_transfer_commission=self.enterprise_transfer_commission + other.enterprise_transfer_commission,
            enterprise_withdrawal_commission=self.enterprise_withdrawal_commission + other.enterprise_withdrawal_commission,
        )


@dataclass(frozen=True)
class Account:
    """Platform account a recipient identifier resolves to"""

    id: str
    role: str
    full_name: str

    @property
    def is_merchant(self) -> bool:
        return self.role == "merchant"


class FailureReason(str, Enum):
    INCOMPLETE_RECIPIENT = "incomplete_recipient"
    INVALID_AMOUNT = "invalid_amount"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    MONTHLY_LIMIT_EXCEEDED = "monthly_limit_exceeded"
    NETWORK_OR_SYSTEM_ERROR = "network_or_system_error"
    PARTIAL_SETTLEMENT_INCONSISTENCY = "partial_settlement_inconsistency"


@dataclass(frozen=True)
class Completed:
    transfer_id: Optional[str]
    quote: FeeQuote
    status: str = field(default="completed", init=False)


@dataclass(frozen=True)
class PendingClaim:
    claim_code: str
    quote: FeeQuote
    claim_id: Optional[str] = None
    status: str = field(default="pending_claim", init=False)


@dataclass(frozen=True)
class Failed:
    reason: FailureReason
    detail: str = ""
    money_moved: bool = False
    quote: Optional[FeeQuote] = None
    status: str = field(default="failed", init=False)

    @property
    def needs_reconciliation(self) -> bool:
        return self.reason is FailureReason.PARTIAL_SETTLEMENT_INCONSISTENCY


SettlementOutcome = Union[Completed, PendingClaim, Failed]
