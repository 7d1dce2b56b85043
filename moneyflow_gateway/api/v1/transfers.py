"""POST /v1/transfers and GET /v1/transfers/history - transfer settlement endpoints"""

import time
import logging
from fastapi import APIRouter, Depends, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from moneyflow_gateway.api.v1.schemas import (
    FeeQuoteResponse,
    HistoryResponse,
    SettlementAttemptItem,
    TransferRequestBody,
    TransferResponse,
)
from moneyflow_gateway.api.dependencies import get_orchestrator, get_request_id
from moneyflow_gateway.domain.models import Completed, Failed, FailureReason, PendingClaim
from moneyflow_gateway.domain.settlement import SettlementOrchestrator, user_message
from moneyflow_gateway.infrastructure.database.models import SettlementAttempt
from moneyflow_gateway.infrastructure.database.repositories import SettlementRepository
from moneyflow_gateway.infrastructure.database.session import get_db
from moneyflow_gateway.infrastructure.observability.logging import log_settlement
from moneyflow_gateway.infrastructure.observability.metrics import record_settlement

router = APIRouter()

FAILURE_STATUS_CODES = {
    FailureReason.INCOMPLETE_RECIPIENT: 400,
    FailureReason.INVALID_AMOUNT: 400,
    FailureReason.INSUFFICIENT_FUNDS: 402,
    FailureReason.MONTHLY_LIMIT_EXCEEDED: 429,
    FailureReason.NETWORK_OR_SYSTEM_ERROR: 503,
    FailureReason.PARTIAL_SETTLEMENT_INCONSISTENCY: 409,
}


def to_attempt_item(attempt: SettlementAttempt) -> SettlementAttemptItem:
    return SettlementAttemptItem(
        attempt_id=str(attempt.id),
        sender_id=attempt.sender_id,
        recipient_identifier=attempt.recipient_identifier,
        amount=attempt.amount,
        fee_amount=attempt.fee_amount,
        status=attempt.status,
        failure_reason=attempt.failure_reason,
        detail=attempt.detail,
        money_moved=attempt.money_moved,
        reconciled=attempt.reconciled,
        transfer_id=attempt.transfer_id,
        claim_code=attempt.claim_code,
        created_at=attempt.created_at.isoformat() if attempt.created_at else "",
    )


@router.post("/transfers", response_model=TransferResponse)
async def create_transfer(
    request_body: TransferRequestBody,
    request: Request,
    db: Session = Depends(get_db),
    orchestrator: SettlementOrchestrator = Depends(get_orchestrator),
):
    """
    Settle a money transfer.

    Flow:
    1. Run the settlement workflow against the data platform
    2. Persist the outcome to the audit log
    3. Record metrics and logs
    4. Map the outcome to an HTTP status (200 for completed or pending claim)
    """
    start_time = time.time()
    request_id = get_request_id(request)
    transfer = request_body.to_domain()

    outcome = await orchestrator.settle(transfer)

    # Audit write failures never change the settlement result
    attempt_id = None
    try:
        attempt = SettlementRepository(db).record_outcome(transfer, outcome, request_id=request_id)
        db.commit()
        attempt_id = str(attempt.id)
    except SQLAlchemyError as e:
        db.rollback()
        logging.error(f"Failed to persist settlement outcome: {e}", extra={"request_id": request_id})

    reason = outcome.reason.value if isinstance(outcome, Failed) else None
    money_moved = outcome.money_moved if isinstance(outcome, Failed) else True
    duration_ms = (time.time() - start_time) * 1000
    record_settlement(
        outcome.status,
        reason,
        outcome.quote.fee_amount if outcome.quote else None,
        outcome.quote.scope.value if outcome.quote else None,
    )
    log_settlement(request_id, transfer.sender_id, outcome.status, reason, money_moved, duration_ms)

    response = TransferResponse(
        status=outcome.status,
        message=user_message(outcome),
        attempt_id=attempt_id,
        transfer_id=outcome.transfer_id if isinstance(outcome, Completed) else None,
        claim_code=outcome.claim_code if isinstance(outcome, PendingClaim) else None,
        reason=reason,
        money_moved=money_moved,
        fee=FeeQuoteResponse.from_quote(outcome.quote) if outcome.quote else None,
    )

    status_code = FAILURE_STATUS_CODES[outcome.reason] if isinstance(outcome, Failed) else 200
    return JSONResponse(status_code=status_code, content=jsonable_encoder(response))


@router.get("/transfers/history", response_model=HistoryResponse)
def get_transfer_history(
    sender_id: str = Query(..., description="Sender identifier"),
    db: Session = Depends(get_db),
):
    """Retrieve recent settlement attempts for a sender"""
    attempts = SettlementRepository(db).get_attempts_by_sender(sender_id, limit=20)
    return HistoryResponse(sender_id=sender_id, attempts=[to_attempt_item(a) for a in attempts])
