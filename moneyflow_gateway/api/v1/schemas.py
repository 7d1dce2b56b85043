"""Pydantic schemas for API request/response validation"""

from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from moneyflow_gateway.domain.models import CommissionSummary, FeeQuote, SenderRole, TransferRequest


class FeeQuoteRequest(BaseModel):
    """Request body for POST /v1/fees/quote"""

    amount: Decimal = Field(..., description="Transfer amount in base currency")
    sender_country: str = Field(..., min_length=1)
    recipient_country: str = Field(..., min_length=1)
    sender_role: SenderRole = SenderRole.USER


class FeeQuoteResponse(BaseModel):
    """Response for POST /v1/fees/quote"""

    amount: Decimal
    fee_amount: Decimal
    total: Decimal
    rate_percent: Decimal
    scope: str
    agent_commission: Decimal
    money_flow_commission: Decimal
    recipient_currency: Optional[str] = None  # display only, fees are always in base currency

    @classmethod
    def from_quote(cls, quote: FeeQuote, recipient_currency: Optional[str] = None) -> "FeeQuoteResponse":
        return cls(
            recipient_currency=recipient_currency,
            amount=quote.amount,
            fee_amount=quote.fee_amount,
            total=quote.total,
            rate_percent=quote.rate_percent,
            scope=quote.scope.value,
            agent_commission=quote.agent_commission,
            money_flow_commission=quote.money_flow_commission,
        )


class TransferRequestBody(BaseModel):
    """Request body for POST /v1/transfers"""

    sender_id: str = Field(..., min_length=1)
    sender_role: SenderRole = SenderRole.USER
    sender_country: str = Field(..., min_length=1)
    amount: Decimal = Field(..., description="Transfer amount in base currency")
    recipient_identifier: str = Field("", description="Recipient phone number or email")
    recipient_country: str = ""
    recipient_full_name: str = ""

    def to_domain(self) -> TransferRequest:
        return TransferRequest(
            amount=self.amount,
            sender_id=self.sender_id,
            sender_role=self.sender_role,
            sender_country=self.sender_country,
            recipient_identifier=self.recipient_identifier.strip(),
            recipient_country=self.recipient_country.strip(),
            recipient_full_name=self.recipient_full_name.strip(),
        )


class TransferResponse(BaseModel):
    """Response for POST /v1/transfers"""

    status: str  # completed | pending_claim | failed
    message: str
    attempt_id: Optional[str] = None
    transfer_id: Optional[str] = None
    claim_code: Optional[str] = None
    reason: Optional[str] = None
    money_moved: bool = False
    fee: Optional[FeeQuoteResponse] = None


class SettlementAttemptItem(BaseModel):
    """Single settlement attempt in history or reconciliation lists"""

    attempt_id: str
    sender_id: str
    recipient_identifier: str
    amount: Decimal
    fee_amount: Optional[Decimal] = None
    status: str
    failure_reason: Optional[str] = None
    detail: Optional[str] = None
    money_moved: bool
    reconciled: bool
    transfer_id: Optional[str] = None
    claim_code: Optional[str] = None
    created_at: str


class HistoryResponse(BaseModel):
    """Response for GET /v1/transfers/history"""

    sender_id: str
    attempts: List[SettlementAttemptItem]


class ReconciliationResponse(BaseModel):
    """Response for GET /v1/reconciliation"""

    attempts: List[SettlementAttemptItem]


class CommissionSummaryResponse(BaseModel):
    """Response for GET /v1/commissions/summary"""

    agent_id: str
    currency: str
    agent_transfer_commission: Decimal
    agent_withdrawal_commission: Decimal
    agent_total_commission: Decimal
    enterprise_transfer_commission: Decimal
    enterprise_withdrawal_commission: Decimal
    enterprise_total_commission: Decimal

    @classmethod
    def from_summary(cls, agent_id: str, currency: str, summary: CommissionSummary, convert) -> "CommissionSummaryResponse":
        return cls(
            agent_id=agent_id,
            currency=currency,
            agent_transfer_commission=convert(summary.agent_transfer_commission),
            agent_withdrawal_commission=convert(summary.agent_withdrawal_commission),
            agent_total_commission=convert(summary.agent_total),
            enterprise_transfer_commission=convert(summary.enterprise_transfer_commission),
            enterprise_withdrawal_commission=convert(summary.enterprise_withdrawal_commission),
            enterprise_total_commission=convert(summary.enterprise_total),
        )
