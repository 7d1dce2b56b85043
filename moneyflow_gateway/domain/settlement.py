"""Settlement orchestrator - drives a transfer request to a terminal outcome"""

import logging
import secrets
import string
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Awaitable, Callable, Dict, List, Optional, Protocol, Union

from moneyflow_gateway.domain.exceptions import (
    InsufficientFundsError,
    PartialSettlementInconsistency,
    RecipientNotFoundError,
    SideEffectFailure,
    ValidationError,
)
from moneyflow_gateway.domain.fees import compute_fee
from moneyflow_gateway.domain.models import (
    Account,
    Completed,
    Failed,
    FailureReason,
    FeeQuote,
    PendingClaim,
    SettlementOutcome,
    TransferRequest,
)
from moneyflow_gateway.infrastructure.observability.metrics import side_effect_failures_counter
from moneyflow_gateway.utils.currency import format_currency

logger = logging.getLogger(__name__)

CLAIM_CODE_LENGTH = 6
CLAIM_CODE_ALPHABET = string.ascii_uppercase + string.digits


class SettlementPlatform(Protocol):
    """Operations the hosted data platform exposes to settlement"""

    async def get_balance(self, user_id: str) -> Decimal: ...

    async def adjust_balance(self, user_id: str, delta: Decimal, operation_type: str) -> Decimal: ...

    async def atomic_process_transfer(
        self, sender_id: str, recipient_identifier: str, amount: Decimal, fee: Decimal
    ) -> Optional[str]: ...

    async def create_transfer_record(
        self,
        sender_id: str,
        recipient_phone: str,
        recipient_name: str,
        recipient_country: str,
        amount: Decimal,
        fee: Decimal,
        status: str,
    ) -> str: ...

    async def create_pending_transfer_claim(
        self,
        sender_id: str,
        recipient_email: str,
        recipient_phone: Optional[str],
        amount: Decimal,
        fee: Decimal,
        claim_code: str,
    ) -> str: ...

    async def resolve_account_by_identifier(self, identifier: str) -> Optional[Account]: ...

    async def record_merchant_payment(self, payer_id: str, merchant_id: str, amount: Decimal, description: str) -> None: ...

    async def dispatch_notification(self, recipient_ids: List[str], title: str, message: str, priority: str = "normal") -> None: ...

    async def get_monthly_sent_total(self, sender_id: str) -> Decimal: ...


class SettlementState(str, Enum):
    VALIDATING_INPUT = "validating_input"
    ATTEMPTING_ATOMIC_SETTLEMENT = "attempting_atomic_settlement"
    CREATING_PENDING_CLAIM = "creating_pending_claim"
    ATTEMPTING_FALLBACK = "attempting_fallback"
    RUNNING_POST_COMMIT_HOOKS = "running_post_commit_hooks"


@dataclass
class _SettlementContext:
    request: TransferRequest
    quote: Optional[FeeQuote] = None


Step = Union[SettlementState, SettlementOutcome]


def generate_claim_code() -> str:
    """Random uppercase alphanumeric code the recipient uses to claim funds"""
    return "".join(secrets.choice(CLAIM_CODE_ALPHABET) for _ in range(CLAIM_CODE_LENGTH))


class SettlementOrchestrator:
    """
    Sequential settlement workflow.

    Flow:
    1. Validate recipient, price the transfer, check balance and monthly limit
    2. Try the platform's atomic transfer RPC
    3. Unknown recipient: store a pending claim and debit the sender
    4. Any other RPC failure: debit directly, then write the transfer record
    5. After a settled transfer: merchant bookkeeping and notification,
       both best-effort

    Money-moving steps are never retried here; retrying is an operator call.
    """

    def __init__(
        self,
        platform: SettlementPlatform,
        monthly_limit: Optional[Decimal] = None,
        claim_code_factory: Callable[[], str] = generate_claim_code,
    ):
        self.platform = platform
        self.monthly_limit = monthly_limit
        self.claim_code_factory = claim_code_factory
        self._handlers: Dict[SettlementState, Callable[[_SettlementContext], Awaitable[Step]]] = {
            SettlementState.VALIDATING_INPUT: self._validate,
            SettlementState.ATTEMPTING_ATOMIC_SETTLEMENT: self._attempt_atomic_settlement,
            SettlementState.CREATING_PENDING_CLAIM: self._create_pending_claim,
            SettlementState.ATTEMPTING_FALLBACK: self._attempt_fallback,
        }

    async def settle(self, request: TransferRequest) -> SettlementOutcome:
        ctx = _SettlementContext(request=request)
        step: Step = SettlementState.VALIDATING_INPUT

        while isinstance(step, SettlementState):
            self._log_state(ctx, step)
            step = await self._handlers[step](ctx)

        if not isinstance(step, Failed):
            self._log_state(ctx, SettlementState.RUNNING_POST_COMMIT_HOOKS)
            await self._run_post_commit_hooks(ctx, step)

        return step

    def _log_state(self, ctx: _SettlementContext, state: SettlementState) -> None:
        logger.info(
            "Settlement state",
            extra={"sender_id": ctx.request.sender_id, "settlement_state": state.value},
        )

    async def _validate(self, ctx: _SettlementContext) -> Step:
        request = ctx.request
        recipient_fields = (request.recipient_identifier, request.recipient_full_name, request.recipient_country)
        if not all((value or "").strip() for value in recipient_fields):
            return Failed(
                FailureReason.INCOMPLETE_RECIPIENT,
                "Recipient phone or email, full name and country are required",
            )

        try:
            quote = compute_fee(request.amount, request.sender_country, request.recipient_country, request.sender_role)
        except ValidationError as e:
            return Failed(FailureReason.INVALID_AMOUNT, str(e))
        ctx.quote = quote

        try:
            balance = await self.platform.get_balance(request.sender_id)
        except Exception as e:
            return Failed(FailureReason.NETWORK_OR_SYSTEM_ERROR, f"Balance check failed: {e}", quote=quote)

        if balance < quote.total:
            return Failed(
                FailureReason.INSUFFICIENT_FUNDS,
                f"Balance {balance} does not cover {quote.total}",
                quote=quote,
            )

        if self.monthly_limit is not None:
            try:
                sent = await self.platform.get_monthly_sent_total(request.sender_id)
            except Exception as e:
                return Failed(FailureReason.NETWORK_OR_SYSTEM_ERROR, f"Monthly limit check failed: {e}", quote=quote)
            if sent + quote.amount > self.monthly_limit:
                remaining = max(self.monthly_limit - sent, Decimal("0"))
                return Failed(
                    FailureReason.MONTHLY_LIMIT_EXCEEDED,
                    f"Remaining monthly limit: {remaining}",
                    quote=quote,
                )

        return SettlementState.ATTEMPTING_ATOMIC_SETTLEMENT

    async def _attempt_atomic_settlement(self, ctx: _SettlementContext) -> Step:
        request, quote = ctx.request, ctx.quote
        try:
            transfer_id = await self.platform.atomic_process_transfer(
                request.sender_id, request.recipient_identifier, quote.amount, quote.fee_amount
            )
        except RecipientNotFoundError:
            logger.info("Recipient not found, creating pending claim", extra={"sender_id": request.sender_id})
            return SettlementState.CREATING_PENDING_CLAIM
        except InsufficientFundsError as e:
            return Failed(FailureReason.INSUFFICIENT_FUNDS, str(e), quote=quote)
        except Exception as e:
            logger.warning(f"Atomic transfer unavailable: {e}", extra={"sender_id": request.sender_id})
            return SettlementState.ATTEMPTING_FALLBACK

        return Completed(transfer_id=transfer_id, quote=quote)

    async def _create_pending_claim(self, ctx: _SettlementContext) -> Step:
        request, quote = ctx.request, ctx.quote
        claim_code = self.claim_code_factory()
        if request.recipient_is_email:
            email, phone = request.recipient_identifier, None
        else:
            email, phone = "", request.recipient_identifier

        try:
            claim_id = await self.platform.create_pending_transfer_claim(
                request.sender_id, email, phone, quote.amount, quote.fee_amount, claim_code
            )
        except Exception as e:
            return Failed(FailureReason.NETWORK_OR_SYSTEM_ERROR, f"Pending claim not stored: {e}", quote=quote)

        try:
            await self.platform.adjust_balance(request.sender_id, -quote.total, "transfer_pending")
        except Exception as e:
            inconsistency = PartialSettlementInconsistency(f"Pending claim {claim_id} exists but sender was not debited: {e}")
            logger.error(str(inconsistency), extra={"sender_id": request.sender_id, "claim_id": claim_id})
            return Failed(
                FailureReason.PARTIAL_SETTLEMENT_INCONSISTENCY,
                str(inconsistency),
                money_moved=False,
                quote=quote,
            )

        return PendingClaim(claim_code=claim_code, quote=quote, claim_id=claim_id)

    async def _attempt_fallback(self, ctx: _SettlementContext) -> Step:
        request, quote = ctx.request, ctx.quote

        try:
            await self.platform.adjust_balance(request.sender_id, -quote.total, "transfer_debit")
        except InsufficientFundsError as e:
            return Failed(FailureReason.INSUFFICIENT_FUNDS, str(e), quote=quote)
        except Exception as e:
            return Failed(FailureReason.NETWORK_OR_SYSTEM_ERROR, f"Fallback debit failed: {e}", quote=quote)

        try:
            transfer_id = await self.platform.create_transfer_record(
                request.sender_id,
                request.recipient_identifier,
                request.recipient_full_name,
                request.recipient_country,
                quote.amount,
                quote.fee_amount,
                "completed",
            )
        except Exception as e:
            inconsistency = PartialSettlementInconsistency(f"Sender debited {quote.total} without a transfer record: {e}")
            logger.error(str(inconsistency), extra={"sender_id": request.sender_id, "debited": str(quote.total)})
            return Failed(
                FailureReason.PARTIAL_SETTLEMENT_INCONSISTENCY,
                str(inconsistency),
                money_moved=True,
                quote=quote,
            )

        return Completed(transfer_id=transfer_id, quote=quote)

    async def _run_post_commit_hooks(self, ctx: _SettlementContext, outcome: Union[Completed, PendingClaim]) -> None:
        request, quote = ctx.request, ctx.quote

        account = None
        try:
            account = await self.platform.resolve_account_by_identifier(request.recipient_identifier)
        except Exception as e:
            self._side_effect_failed(SideEffectFailure("recipient_lookup", e), request)

        if account is not None and account.is_merchant:
            try:
                await self.platform.record_merchant_payment(
                    request.sender_id,
                    account.id,
                    quote.amount,
                    f"Transfer from {request.sender_id}",
                )
            except Exception as e:
                self._side_effect_failed(SideEffectFailure("merchant_payment", e), request)

        recipients = [request.sender_id]
        if account is not None:
            recipients.append(account.id)
        title, message = _notification_text(request, outcome)
        try:
            await self.platform.dispatch_notification(recipients, title, message, "high")
        except Exception as e:
            self._side_effect_failed(SideEffectFailure("notification", e), request)

    def _side_effect_failed(self, failure: SideEffectFailure, request: TransferRequest) -> None:
        side_effect_failures_counter.labels(hook=failure.hook).inc()
        logger.warning(str(failure), extra={"sender_id": request.sender_id, "hook": failure.hook})


def _notification_text(request: TransferRequest, outcome: Union[Completed, PendingClaim]) -> tuple[str, str]:
    amount = format_currency(outcome.quote.amount)
    if isinstance(outcome, PendingClaim):
        return "Transfer pending", f"{amount} reserved for {request.recipient_full_name}, awaiting claim"
    return "Transfer completed", f"{amount} sent to {request.recipient_full_name}"


FAILURE_MESSAGES = {
    FailureReason.INCOMPLETE_RECIPIENT: "Recipient phone or email, full name and country are required.",
    FailureReason.INVALID_AMOUNT: "Enter a valid transfer amount.",
    FailureReason.INSUFFICIENT_FUNDS: "Insufficient balance for this transfer.",
    FailureReason.MONTHLY_LIMIT_EXCEEDED: "Monthly transfer limit exceeded.",
    FailureReason.NETWORK_OR_SYSTEM_ERROR: "The transfer could not be completed. No money was moved, please try again.",
    FailureReason.PARTIAL_SETTLEMENT_INCONSISTENCY: (
        "Your account may already have been debited. Do not retry; contact support."
    ),
}


def user_message(outcome: SettlementOutcome) -> str:
    """Text shown to the sender for a settlement outcome"""
    if isinstance(outcome, Completed):
        return f"Transfer of {format_currency(outcome.quote.amount)} completed."
    if isinstance(outcome, PendingClaim):
        return (
            f"Transfer pending. Share claim code {outcome.claim_code} with the recipient "
            f"to collect {format_currency(outcome.quote.amount)}."
        )
    return FAILURE_MESSAGES[outcome.reason]
