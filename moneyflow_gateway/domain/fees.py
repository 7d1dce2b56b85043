"""Fee calculator - transfer pricing and commission split rate tables"""

from decimal import Decimal, InvalidOperation
from typing import Union

from moneyflow_gateway.domain.exceptions import ValidationError
from moneyflow_gateway.domain.models import (
    CommissionRates,
    FeeQuote,
    OperationType,
    SenderRole,
    TransferScope,
    ZERO,
)

# Caller-facing pricing table (charged at transfer time)
NATIONAL_RATE = Decimal("0.01")
INTERNATIONAL_RATE = Decimal("0.065")
INTERNATIONAL_HIGH_VOLUME_RATE = Decimal("0.05")
INTERNATIONAL_HIGH_VOLUME_THRESHOLD = Decimal("800000")
AGENT_INTERNATIONAL_SHARE = Decimal("0.1")

# Commission reporting table (retrospective, per operation type)
COMMISSION_SPLIT_RATES = {
    OperationType.TRANSFER: CommissionRates(agent=Decimal("0.01"), enterprise=Decimal("0.055")),
    OperationType.WITHDRAWAL: CommissionRates(agent=Decimal("0.005"), enterprise=Decimal("0.01")),
}

Number = Union[Decimal, int, float, str]


def to_money(value: Number) -> Decimal:
    """Coerce a numeric input to Decimal, rejecting anything non-finite"""
    if isinstance(value, bool):
        raise ValidationError(f"Invalid amount: {value!r}")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError) as e:
        raise ValidationError(f"Invalid amount: {value!r}") from e
    if not amount.is_finite():
        raise ValidationError(f"Invalid amount: {value!r}")
    return amount


def transfer_scope(sender_country: str, recipient_country: str) -> TransferScope:
    if sender_country == recipient_country:
        return TransferScope.NATIONAL
    return TransferScope.INTERNATIONAL


def transfer_pricing_rate(role: SenderRole, scope: TransferScope, amount: Decimal) -> Decimal:
    """
    Rate charged to the sender of a transfer.

    - National: 1%
    - International: 6.5% below 800 000 XAF, 5% from 800 000 XAF up

    Both roles currently pay the same rate; the role only changes how the
    fee is split (see compute_fee).
    """
    if scope is TransferScope.NATIONAL:
        return NATIONAL_RATE
    if amount < INTERNATIONAL_HIGH_VOLUME_THRESHOLD:
        return INTERNATIONAL_RATE
    return INTERNATIONAL_HIGH_VOLUME_RATE


def commission_split_rate(operation_type: OperationType) -> CommissionRates:
    """Agent and enterprise rates used by commission reporting"""
    return COMMISSION_SPLIT_RATES[OperationType(operation_type)]


def compute_fee(
    amount: Number,
    sender_country: str,
    recipient_country: str,
    role: SenderRole = SenderRole.USER,
) -> FeeQuote:
    """
    Price a transfer and split the fee between agent and platform.

    No rounding is applied; amounts stay exact Decimals until display.

    Raises:
        ValidationError: amount is not a positive finite number
    """
    amount = to_money(amount)
    if amount <= 0:
        raise ValidationError(f"Transfer amount must be positive, got {amount}")

    role = SenderRole(role)
    scope = transfer_scope(sender_country, recipient_country)
    rate = transfer_pricing_rate(role, scope, amount)
    fee = amount * rate

    if scope is TransferScope.INTERNATIONAL and role is SenderRole.AGENT:
        agent_commission = fee * AGENT_INTERNATIONAL_SHARE
    else:
        agent_commission = ZERO

    return FeeQuote(
        amount=amount,
        fee_amount=fee,
        rate=rate,
        agent_commission=agent_commission,
        money_flow_commission=fee - agent_commission,
        scope=scope,
    )
