"""GET /v1/reconciliation - settlements that need an operator"""

import uuid
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from moneyflow_gateway.api.v1.schemas import ReconciliationResponse, SettlementAttemptItem
from moneyflow_gateway.api.v1.transfers import to_attempt_item
from moneyflow_gateway.infrastructure.database.repositories import SettlementRepository
from moneyflow_gateway.infrastructure.database.session import get_db

router = APIRouter()


@router.get("/reconciliation", response_model=ReconciliationResponse)
def list_unreconciled(db: Session = Depends(get_db)):
    """
    List attempts where the sender may have been debited without a matching
    transfer record (or a claim exists without a debit).
    """
    attempts = SettlementRepository(db).get_unreconciled()
    return ReconciliationResponse(attempts=[to_attempt_item(a) for a in attempts])


@router.post("/reconciliation/{attempt_id}/resolve", response_model=SettlementAttemptItem)
def resolve_attempt(attempt_id: str, db: Session = Depends(get_db)):
    """Mark an inconsistent attempt as handled by an operator"""
    try:
        attempt_uuid = uuid.UUID(attempt_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid attempt ID format")

    attempt = SettlementRepository(db).mark_reconciled(attempt_uuid)
    if attempt is None:
        raise HTTPException(status_code=404, detail="Attempt not found")

    db.commit()
    return to_attempt_item(attempt)
