"""Hosted data platform HTTP client (PostgREST tables and RPC functions)"""

import asyncio
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

import httpx

from moneyflow_gateway.config import settings
from moneyflow_gateway.domain.exceptions import (
    InsufficientFundsError,
    PlatformError,
    PlatformUnavailableError,
    RecipientNotFoundError,
    ValidationError,
)
from moneyflow_gateway.domain.fees import to_money
from moneyflow_gateway.domain.models import Account
from moneyflow_gateway.infrastructure.observability.metrics import (
    notification_latency_histogram,
    platform_call_failures_counter,
)
from moneyflow_gateway.utils.date_utils import month_start, next_month_start

RECIPIENT_NOT_FOUND_MARKERS = ("user not found", "recipient not found")
INSUFFICIENT_FUNDS_MARKERS = ("insufficient funds",)


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict):
        return " ".join(str(body.get(key) or "") for key in ("message", "details", "hint")).strip()
    return str(body)


class PlatformClient:
    """Client for the hosted data platform's REST and RPC endpoints"""

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        notification_max_retries: int | None = None,
        notification_backoff_base: float | None = None,
    ):
        self.base_url = (base_url or settings.platform_base_url).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.platform_api_key
        self.timeout = timeout or settings.http_timeout_seconds
        self.transport = transport
        self.max_retries = notification_max_retries or settings.notification_max_retries
        self.backoff_base = (
            notification_backoff_base
            if notification_backoff_base is not None
            else settings.notification_backoff_base
        )

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self.transport,
            headers={
                "apikey": self.api_key,
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
                "Prefer": "return=representation",
            },
        )

    async def _request(self, operation: str, method: str, path: str, **kwargs) -> Any:
        """
        Send one request and map failures onto domain errors.

        Raises:
            RecipientNotFoundError: platform reports an unknown recipient
            InsufficientFundsError: platform-side balance check rejected the debit
            PlatformUnavailableError: timeout or transport failure
            PlatformError: any other HTTP error or unparseable body
        """
        async with self._client() as client:
            try:
                response = await client.request(method, path, **kwargs)
                response.raise_for_status()
                if not response.content:
                    return None
                return response.json()

            except httpx.TimeoutException as e:
                platform_call_failures_counter.labels(operation=operation).inc()
                raise PlatformUnavailableError(f"{operation}: platform timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                platform_call_failures_counter.labels(operation=operation).inc()
                message = _error_message(e.response)
                lowered = message.lower()
                if any(marker in lowered for marker in RECIPIENT_NOT_FOUND_MARKERS):
                    raise RecipientNotFoundError(message) from e
                if any(marker in lowered for marker in INSUFFICIENT_FUNDS_MARKERS):
                    raise InsufficientFundsError(message) from e
                raise PlatformError(f"{operation}: platform error {e.response.status_code}: {message}") from e
            except httpx.RequestError as e:
                platform_call_failures_counter.labels(operation=operation).inc()
                raise PlatformUnavailableError(f"{operation}: platform unreachable: {e}") from e
            except ValueError as e:
                platform_call_failures_counter.labels(operation=operation).inc()
                raise PlatformError(f"{operation}: invalid response body: {e}") from e

    async def _rpc(self, function: str, params: Dict[str, Any]) -> Any:
        return await self._request(function, "POST", f"/rest/v1/rpc/{function}", json=params)

    async def _insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        data = await self._request(f"insert_{table}", "POST", f"/rest/v1/{table}", json=row)
        if isinstance(data, list):
            data = data[0] if data else None
        if not isinstance(data, dict):
            raise PlatformError(f"insert_{table}: platform returned no row")
        return data

    def _row_id(self, table: str, row: Dict[str, Any]) -> str:
        if row.get("id") is None:
            raise PlatformError(f"insert_{table}: platform returned a row without an id")
        return str(row["id"])

    async def _select(self, table: str, params: Dict[str, str]) -> List[Dict[str, Any]]:
        data = await self._request(f"select_{table}", "GET", f"/rest/v1/{table}", params=params)
        if not isinstance(data, list):
            raise PlatformError(f"select_{table}: expected a list of rows")
        return data

    async def get_balance(self, user_id: str) -> Decimal:
        rows = await self._select("profiles", {"id": f"eq.{user_id}", "select": "balance"})
        if not rows:
            raise PlatformError(f"Profile {user_id} not found")
        try:
            return to_money(rows[0]["balance"])
        except (KeyError, ValidationError) as e:
            raise PlatformError(f"Invalid balance for {user_id}: {e}") from e

    async def adjust_balance(self, user_id: str, delta: Decimal, operation_type: str) -> Decimal:
        new_balance = await self._rpc(
            "secure_increment_balance",
            {"target_user_id": user_id, "amount": float(delta), "operation_type": operation_type},
        )
        if new_balance is None:
            raise PlatformError("secure_increment_balance returned no balance")
        return to_money(new_balance)

    async def atomic_process_transfer(
        self,
        sender_id: str,
        recipient_identifier: str,
        amount: Decimal,
        fee: Decimal,
    ) -> Optional[str]:
        result = await self._rpc(
            "process_money_transfer",
            {
                "sender_id": sender_id,
                "recipient_identifier": recipient_identifier,
                "transfer_amount": float(amount),
                "transfer_fees": float(fee),
            },
        )
        return str(result) if result is not None else None

    async def create_transfer_record(
        self,
        sender_id: str,
        recipient_phone: str,
        recipient_name: str,
        recipient_country: str,
        amount: Decimal,
        fee: Decimal,
        status: str,
    ) -> str:
        row = await self._insert(
            "transfers",
            {
                "sender_id": sender_id,
                "recipient_phone": recipient_phone,
                "recipient_full_name": recipient_name,
                "recipient_country": recipient_country,
                "amount": float(amount),
                "fees": float(fee),
                "currency": settings.base_currency,
                "status": status,
            },
        )
        return self._row_id("transfers", row)

    async def create_pending_transfer_claim(
        self,
        sender_id: str,
        recipient_email: str,
        recipient_phone: str | None,
        amount: Decimal,
        fee: Decimal,
        claim_code: str,
    ) -> str:
        row = await self._insert(
            "pending_transfers",
            {
                "sender_id": sender_id,
                "recipient_email": recipient_email,
                "recipient_phone": recipient_phone,
                "amount": float(amount),
                "fees": float(fee),
                "currency": settings.base_currency,
                "claim_code": claim_code,
                "status": "pending",
            },
        )
        return self._row_id("pending_transfers", row)

    async def resolve_account_by_identifier(self, identifier: str) -> Optional[Account]:
        rows = await self._select(
            "profiles",
            {
                "or": f"(phone.eq.{identifier},email.eq.{identifier})",
                "select": "id,role,full_name",
                "limit": "1",
            },
        )
        if not rows:
            return None
        row = rows[0]
        return Account(id=str(row["id"]), role=row.get("role") or "user", full_name=row.get("full_name") or "")

    async def record_merchant_payment(self, payer_id: str, merchant_id: str, amount: Decimal, description: str) -> None:
        await self._insert(
            "merchant_payments",
            {
                "user_id": payer_id,
                "merchant_id": merchant_id,
                "amount": float(amount),
                "description": description,
                "currency": settings.base_currency,
                "status": "completed",
            },
        )

    async def dispatch_notification(
        self,
        recipient_ids: List[str],
        title: str,
        message: str,
        priority: str = "normal",
    ) -> None:
        """
        Insert an individual notification, retrying with exponential backoff.

        Retry strategy:
        - Backoff: base, 2*base, 4*base ... between attempts
        - Retries on any platform error; raises the last one when exhausted
        """
        payload = {
            "title": title,
            "message": message,
            "priority": priority,
            "notification_type": "individual",
            "target_users": recipient_ids,
            "total_recipients": len(recipient_ids),
        }
        attempt = 0
        while True:
            try:
                with notification_latency_histogram.time():
                    await self._insert("notifications", payload)
                return
            except PlatformError:
                attempt += 1
                if attempt >= self.max_retries:
                    raise
                await asyncio.sleep(self.backoff_base * (2 ** (attempt - 1)))

    async def get_monthly_sent_total(self, sender_id: str, today: date | None = None) -> Decimal:
        today = today or date.today()
        since, until = month_start(today), next_month_start(today)
        rows = await self._select(
            "transfers",
            {
                "sender_id": f"eq.{sender_id}",
                "status": "eq.completed",
                "and": f"(created_at.gte.{since.isoformat()},created_at.lt.{until.isoformat()})",
                "select": "amount",
            },
        )
        return sum((to_money(row["amount"]) for row in rows if row.get("amount") is not None), Decimal("0"))

    async def list_transfer_rows(self, sender_id: str) -> List[Dict[str, Any]]:
        return await self._select(
            "transfers",
            {"sender_id": f"eq.{sender_id}", "select": "amount,fees,status,created_at", "order": "created_at.desc"},
        )

    async def list_withdrawal_rows(self, user_id: str) -> List[Dict[str, Any]]:
        return await self._select(
            "withdrawals",
            {
                "user_id": f"eq.{user_id}",
                "status": "eq.completed",
                "select": "amount,status,created_at",
                "order": "created_at.desc",
            },
        )
