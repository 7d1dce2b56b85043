"""Platform client tests against a mocked PostgREST transport"""

import json
import httpx
import pytest
from datetime import date
from decimal import Decimal
from moneyflow_gateway.domain.exceptions import (
    InsufficientFundsError,
    PlatformError,
    PlatformUnavailableError,
    RecipientNotFoundError,
)
from moneyflow_gateway.domain.models import Failed, FailureReason
from moneyflow_gateway.domain.settlement import SettlementOrchestrator
from moneyflow_gateway.infrastructure.clients.platform import PlatformClient


def make_client(handler, **kwargs) -> PlatformClient:
    return PlatformClient(
        base_url="http://platform.test",
        api_key="test-key",
        transport=httpx.MockTransport(handler),
        notification_backoff_base=0,
        **kwargs,
    )


async def test_get_balance_reads_profile():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/rest/v1/profiles"
        assert request.url.params["id"] == "eq.user-1"
        assert request.headers["apikey"] == "test-key"
        return httpx.Response(200, json=[{"balance": 20000}])

    assert await make_client(handler).get_balance("user-1") == Decimal("20000")


async def test_get_balance_missing_profile():
    client = make_client(lambda request: httpx.Response(200, json=[]))

    with pytest.raises(PlatformError):
        await client.get_balance("ghost")


async def test_atomic_transfer_posts_rpc_arguments():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json="9b1d4c2e-0000-4000-8000-000000000001")

    result = await make_client(handler).atomic_process_transfer("user-1", "+237690000001", Decimal("10000"), Decimal("100"))

    assert result == "9b1d4c2e-0000-4000-8000-000000000001"
    assert seen["path"] == "/rest/v1/rpc/process_money_transfer"
    assert seen["body"] == {
        "sender_id": "user-1",
        "recipient_identifier": "+237690000001",
        "transfer_amount": 10000.0,
        "transfer_fees": 100.0,
    }


@pytest.mark.parametrize(
    "message, error",
    [
        ("User not found", RecipientNotFoundError),
        ("Recipient not found for identifier", RecipientNotFoundError),
        ("Insufficient funds", InsufficientFundsError),
        ("function process_money_transfer does not exist", PlatformError),
    ],
)
async def test_rpc_errors_are_mapped(message, error):
    client = make_client(lambda request: httpx.Response(400, json={"message": message, "code": "P0001"}))

    with pytest.raises(error):
        await client.atomic_process_transfer("user-1", "+237690000001", Decimal("1000"), Decimal("10"))


async def test_timeout_maps_to_unavailable():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(PlatformUnavailableError):
        await make_client(handler).adjust_balance("user-1", Decimal("-100"), "transfer_debit")


async def test_connection_error_maps_to_unavailable():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(PlatformUnavailableError):
        await make_client(handler).get_balance("user-1")


async def test_adjust_balance_returns_new_balance():
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        assert body == {"target_user_id": "user-1", "amount": -10100.0, "operation_type": "transfer_debit"}
        return httpx.Response(200, json=9900)

    assert await make_client(handler).adjust_balance("user-1", Decimal("-10100"), "transfer_debit") == Decimal("9900")


async def test_create_pending_claim_returns_id():
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        assert request.url.path == "/rest/v1/pending_transfers"
        assert body["claim_code"] == "ABC123"
        assert body["recipient_phone"] == "+237690000001"
        return httpx.Response(201, json=[{"id": "claim-1", **body}])

    claim_id = await make_client(handler).create_pending_transfer_claim(
        "user-1", "", "+237690000001", Decimal("5000"), Decimal("50"), "ABC123"
    )

    assert claim_id == "claim-1"


async def test_resolve_account_by_identifier():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["or"] == "(phone.eq.boutique@example.com,email.eq.boutique@example.com)"
        return httpx.Response(200, json=[{"id": "m-1", "role": "merchant", "full_name": "Boutique"}])

    account = await make_client(handler).resolve_account_by_identifier("boutique@example.com")

    assert account.id == "m-1"
    assert account.is_merchant


async def test_resolve_account_unknown_returns_none():
    client = make_client(lambda request: httpx.Response(200, json=[]))

    assert await client.resolve_account_by_identifier("nobody@example.com") is None


async def test_notification_retries_then_succeeds():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if len(calls) < 3:
            return httpx.Response(503, json={"message": "unavailable"})
        return httpx.Response(201, json=[{"id": "n-1"}])

    await make_client(handler, notification_max_retries=3).dispatch_notification(["user-1"], "Title", "Body", "high")

    assert len(calls) == 3
    body = json.loads(calls[-1].content)
    assert body["target_users"] == ["user-1"]
    assert body["total_recipients"] == 1


async def test_notification_gives_up_after_max_retries():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(500, json={"message": "boom"})

    with pytest.raises(PlatformError):
        await make_client(handler, notification_max_retries=2).dispatch_notification(["user-1"], "Title", "Body")

    assert len(calls) == 2


async def test_monthly_sent_total_sums_current_month():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["and"] == "(created_at.gte.2026-10-01,created_at.lt.2026-11-01)"
        assert request.url.params["status"] == "eq.completed"
        return httpx.Response(200, json=[{"amount": 150000}, {"amount": "50000.5"}])

    total = await make_client(handler).get_monthly_sent_total("user-1", today=date(2026, 10, 19))

    assert total == Decimal("200000.5")


@pytest.mark.parametrize(
    "call",
    [
        lambda client: client.create_transfer_record(
            "user-1", "+237690000001", "Awa", "Cameroun", Decimal("1000"), Decimal("10"), "completed"
        ),
        lambda client: client.create_pending_transfer_claim(
            "user-1", "awa@example.com", None, Decimal("1000"), Decimal("10"), "ABC123"
        ),
    ],
)
async def test_inserted_row_without_id_is_platform_error(call):
    client = make_client(lambda request: httpx.Response(201, json=[{"status": "completed"}]))

    with pytest.raises(PlatformError):
        await call(client)


async def test_settlement_after_debit_with_unusable_insert_is_reconcilable(transfer_request):
    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path == "/rest/v1/profiles" and "id" in request.url.params:
            return httpx.Response(200, json=[{"balance": 20000}])
        if path == "/rest/v1/rpc/process_money_transfer":
            return httpx.Response(404, json={"message": "function process_money_transfer does not exist"})
        if path == "/rest/v1/rpc/secure_increment_balance":
            return httpx.Response(200, json=9900)
        if path == "/rest/v1/transfers":
            return httpx.Response(201, json=[{"status": "completed"}])
        return httpx.Response(200, json=[])

    outcome = await SettlementOrchestrator(make_client(handler)).settle(transfer_request)

    assert isinstance(outcome, Failed)
    assert outcome.reason is FailureReason.PARTIAL_SETTLEMENT_INCONSISTENCY
    assert outcome.money_moved is True
