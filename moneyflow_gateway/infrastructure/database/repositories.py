"""Data access layer for the settlement audit log"""

import uuid
from typing import List, Optional
from sqlalchemy.orm import Session
from moneyflow_gateway.infrastructure.database.models import SettlementAttempt
from moneyflow_gateway.domain.models import (
    Completed,
    Failed,
    FailureReason,
    PendingClaim,
    SettlementOutcome,
    TransferRequest,
)


class SettlementRepository:
    """Repository for settlement attempts"""

    def __init__(self, db: Session):
        self.db = db

    def record_outcome(
        self,
        request: TransferRequest,
        outcome: SettlementOutcome,
        request_id: str | None = None,
    ) -> SettlementAttempt:
        """Persist a settlement outcome"""
        attempt = SettlementAttempt(
            request_id=request_id,
            sender_id=request.sender_id,
            sender_role=request.sender_role.value,
            recipient_identifier=request.recipient_identifier,
            recipient_country=request.recipient_country,
            amount=request.amount,
            fee_amount=outcome.quote.fee_amount if outcome.quote is not None else None,
            status=outcome.status,
        )
        if isinstance(outcome, Completed):
            attempt.transfer_id = outcome.transfer_id
            attempt.money_moved = True
        elif isinstance(outcome, PendingClaim):
            attempt.claim_code = outcome.claim_code
            attempt.money_moved = True
        elif isinstance(outcome, Failed):
            attempt.failure_reason = outcome.reason.value
            attempt.detail = outcome.detail
            attempt.money_moved = outcome.money_moved

        self.db.add(attempt)
        self.db.flush()  # Get ID without committing
        return attempt

    def get_attempts_by_sender(self, sender_id: str, limit: int = 20) -> List[SettlementAttempt]:
        """Fetch recent attempts for a sender"""
        return (
            self.db.query(SettlementAttempt)
            .filter(SettlementAttempt.sender_id == sender_id)
            .order_by(SettlementAttempt.created_at.desc())
            .limit(limit)
            .all()
        )

    def get_unreconciled(self, limit: int = 100) -> List[SettlementAttempt]:
        """Attempts left in an inconsistent state that an operator must resolve"""
        return (
            self.db.query(SettlementAttempt)
            .filter(SettlementAttempt.failure_reason == FailureReason.PARTIAL_SETTLEMENT_INCONSISTENCY.value)
            .filter(SettlementAttempt.reconciled.is_(False))
            .order_by(SettlementAttempt.created_at.asc())
            .limit(limit)
            .all()
        )

    def mark_reconciled(self, attempt_id: uuid.UUID) -> Optional[SettlementAttempt]:
        """Flag an inconsistent attempt as resolved by an operator"""
        attempt = (
            self.db.query(SettlementAttempt)
            .filter(SettlementAttempt.id == attempt_id)
            .first()
        )
        if attempt is None:
            return None
        attempt.reconciled = True
        self.db.flush()
        return attempt
