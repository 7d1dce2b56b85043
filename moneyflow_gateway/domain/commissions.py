"""Commission ledger aggregation over historical transfers and withdrawals"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Iterable, Mapping, Optional, Union

from moneyflow_gateway.domain.exceptions import ValidationError
from moneyflow_gateway.domain.fees import commission_split_rate, to_money
from moneyflow_gateway.domain.models import (
    CommissionRecord,
    CommissionSummary,
    OperationType,
    ZERO,
)

logger = logging.getLogger(__name__)

COMPLETED = "completed"

RecordLike = Union[CommissionRecord, Mapping[str, Any]]


def parse_commission_record(row: RecordLike, operation_type: OperationType) -> Optional[CommissionRecord]:
    """
    Build a CommissionRecord from a platform row.

    Returns None when the amount is missing, non-numeric or negative. The
    platform's history is not guaranteed clean, so bad rows are dropped
    instead of failing the whole report.
    """
    if isinstance(row, CommissionRecord):
        return row
    if not isinstance(row, Mapping):
        return None

    raw_amount = row.get("amount")
    if raw_amount is None:
        return None
    try:
        amount = to_money(raw_amount)
    except ValidationError:
        return None
    if amount < 0:
        return None

    try:
        fee = to_money(row.get("fees", row.get("fee")) or 0)
    except ValidationError:
        fee = ZERO

    created_at = row.get("created_at")
    if isinstance(created_at, str):
        try:
            created_at = datetime.fromisoformat(created_at)
        except ValueError:
            created_at = None

    return CommissionRecord(
        operation_type=operation_type,
        amount=amount,
        fee=fee,
        role=row.get("role"),
        created_at=created_at if isinstance(created_at, datetime) else None,
        status=row.get("status"),
    )


def _sum_amounts(records: Iterable[RecordLike], operation_type: OperationType, completed_only: bool) -> Decimal:
    total = ZERO
    for row in records:
        record = parse_commission_record(row, operation_type)
        if record is None:
            logger.debug("Skipping malformed %s record", operation_type.value, extra={"record": repr(row)})
            continue
        if completed_only and record.status != COMPLETED:
            continue
        total += record.amount
    return total


def aggregate(
    transfer_records: Iterable[RecordLike],
    withdrawal_records: Iterable[RecordLike],
) -> CommissionSummary:
    """
    Fold transfer and withdrawal history into a CommissionSummary.

    Rules:
    - Transfers count whatever their status
    - Withdrawals count only once completed
    - Rates apply to the summed amount of each operation type
    """
    transfer_total = _sum_amounts(transfer_records, OperationType.TRANSFER, completed_only=False)
    withdrawal_total = _sum_amounts(withdrawal_records, OperationType.WITHDRAWAL, completed_only=True)

    transfer_rates = commission_split_rate(OperationType.TRANSFER)
    withdrawal_rates = commission_split_rate(OperationType.WITHDRAWAL)

    return CommissionSummary(
        agent_transfer_commission=transfer_total * transfer_rates.agent,
        agent_withdrawal_commission=withdrawal_total * withdrawal_rates.agent,
        enterprise_transfer_commission=transfer_total * transfer_rates.enterprise,
        enterprise_withdrawal_commission=withdrawal_total * withdrawal_rates.enterprise,
    )
