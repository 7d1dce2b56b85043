"""Integration tests for API endpoints"""

import uuid
import pytest
from decimal import Decimal
from unittest.mock import AsyncMock
from fastapi.testclient import TestClient
from moneyflow_gateway.domain.exceptions import (
    PlatformError,
    PlatformUnavailableError,
    RecipientNotFoundError,
)


def transfer_body(**overrides) -> dict:
    body = {
        "sender_id": "agent-1",
        "sender_role": "agent",
        "sender_country": "Cameroun",
        "amount": "10000",
        "recipient_identifier": "+237690000001",
        "recipient_country": "Cameroun",
        "recipient_full_name": "Awa Ndiaye",
    }
    body.update(overrides)
    return body


def test_health_endpoint(client: TestClient):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "moneyflow-gateway"}


def test_metrics_endpoint_counts_settlements(client: TestClient):
    """Settlement outcomes show up in Prometheus output"""
    client.post("/v1/transfers", json=transfer_body())

    response = client.get("/metrics")
    assert response.status_code == 200
    assert "moneyflow_settlement_total" in response.text


def test_fee_quote_national(client: TestClient):
    response = client.post(
        "/v1/fees/quote",
        json={"amount": "10000", "sender_country": "Cameroun", "recipient_country": "Cameroun", "sender_role": "agent"},
    )

    assert response.status_code == 200
    data = response.json()
    assert Decimal(str(data["fee_amount"])) == Decimal("100")
    assert Decimal(str(data["total"])) == Decimal("10100")
    assert Decimal(str(data["rate_percent"])) == Decimal("1")
    assert data["scope"] == "national"
    assert data["recipient_currency"] == "XAF"


def test_fee_quote_international_agent_split(client: TestClient):
    response = client.post(
        "/v1/fees/quote",
        json={"amount": "100000", "sender_country": "Cameroun", "recipient_country": "France", "sender_role": "agent"},
    )

    data = response.json()
    assert Decimal(str(data["fee_amount"])) == Decimal("6500")
    assert Decimal(str(data["agent_commission"])) == Decimal("650")
    assert Decimal(str(data["money_flow_commission"])) == Decimal("5850")
    assert data["recipient_currency"] == "EUR"


def test_fee_quote_rejects_non_positive_amount(client: TestClient):
    response = client.post(
        "/v1/fees/quote",
        json={"amount": "0", "sender_country": "Cameroun", "recipient_country": "Cameroun"},
    )

    assert response.status_code == 400


def test_transfer_completed(client: TestClient, platform: AsyncMock):
    """Test POST /v1/transfers when the atomic path settles"""
    response = client.post("/v1/transfers", json=transfer_body())

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "completed"
    assert data["transfer_id"] == "transfer-1"
    assert data["money_moved"] is True
    assert data["attempt_id"] is not None
    assert Decimal(str(data["fee"]["total"])) == Decimal("10100")
    assert "10 000 XAF" in data["message"]
    platform.atomic_process_transfer.assert_awaited_once()


def test_transfer_insufficient_funds(client: TestClient, platform: AsyncMock):
    platform.get_balance.return_value = Decimal("5000")

    response = client.post("/v1/transfers", json=transfer_body())

    assert response.status_code == 402
    data = response.json()
    assert data["status"] == "failed"
    assert data["reason"] == "insufficient_funds"
    assert data["money_moved"] is False
    platform.atomic_process_transfer.assert_not_called()


def test_transfer_incomplete_recipient(client: TestClient, platform: AsyncMock):
    response = client.post("/v1/transfers", json=transfer_body(recipient_full_name="   "))

    assert response.status_code == 400
    assert response.json()["reason"] == "incomplete_recipient"
    platform.get_balance.assert_not_called()


@pytest.mark.parametrize("amount", ["-5", "0"])
def test_transfer_rejects_non_positive_amount(client: TestClient, platform: AsyncMock, amount):
    response = client.post("/v1/transfers", json=transfer_body(amount=amount))

    assert response.status_code == 400
    data = response.json()
    assert data["reason"] == "invalid_amount"
    assert data["money_moved"] is False
    platform.get_balance.assert_not_called()


def test_transfer_non_domain_error_after_debit_is_reconcilable(client: TestClient, platform: AsyncMock):
    platform.atomic_process_transfer.side_effect = ConnectionError("socket reset")
    platform.create_transfer_record.side_effect = KeyError("id")

    response = client.post("/v1/transfers", json=transfer_body())

    assert response.status_code == 409
    data = response.json()
    assert data["reason"] == "partial_settlement_inconsistency"
    pending = client.get("/v1/reconciliation").json()["attempts"]
    assert [a["attempt_id"] for a in pending] == [data["attempt_id"]]


def test_transfer_pending_claim(client: TestClient, platform: AsyncMock):
    platform.atomic_process_transfer.side_effect = RecipientNotFoundError("User not found")

    response = client.post("/v1/transfers", json=transfer_body(amount="5000", sender_role="user"))

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "pending_claim"
    assert len(data["claim_code"]) == 6
    assert data["claim_code"] in data["message"]


def test_transfer_platform_unavailable(client: TestClient, platform: AsyncMock):
    platform.get_balance.side_effect = PlatformUnavailableError("timeout")

    response = client.post("/v1/transfers", json=transfer_body())

    assert response.status_code == 503
    assert response.json()["reason"] == "network_or_system_error"


def test_partial_inconsistency_is_listed_for_reconciliation(client: TestClient, platform: AsyncMock):
    platform.atomic_process_transfer.side_effect = PlatformError("rpc missing")
    platform.create_transfer_record.side_effect = PlatformError("insert failed")

    response = client.post("/v1/transfers", json=transfer_body())

    assert response.status_code == 409
    data = response.json()
    assert data["reason"] == "partial_settlement_inconsistency"
    assert data["money_moved"] is True

    pending = client.get("/v1/reconciliation").json()["attempts"]
    assert [a["attempt_id"] for a in pending] == [data["attempt_id"]]
    assert pending[0]["reconciled"] is False

    resolved = client.post(f"/v1/reconciliation/{data['attempt_id']}/resolve")
    assert resolved.status_code == 200
    assert resolved.json()["reconciled"] is True
    assert client.get("/v1/reconciliation").json()["attempts"] == []


def test_reconciliation_ignores_clean_failures(client: TestClient, platform: AsyncMock):
    platform.get_balance.return_value = Decimal("1")
    client.post("/v1/transfers", json=transfer_body())

    assert client.get("/v1/reconciliation").json()["attempts"] == []


def test_resolve_invalid_attempt_id(client: TestClient):
    assert client.post("/v1/reconciliation/not-a-uuid/resolve").status_code == 400


def test_resolve_unknown_attempt(client: TestClient):
    assert client.post(f"/v1/reconciliation/{uuid.uuid4()}/resolve").status_code == 404


def test_transfer_history(client: TestClient, platform: AsyncMock):
    client.post("/v1/transfers", json=transfer_body())
    platform.get_balance.return_value = Decimal("1")
    client.post("/v1/transfers", json=transfer_body())
    client.post("/v1/transfers", json=transfer_body(sender_id="someone-else"))

    response = client.get("/v1/transfers/history", params={"sender_id": "agent-1"})

    assert response.status_code == 200
    data = response.json()
    assert data["sender_id"] == "agent-1"
    assert sorted(a["status"] for a in data["attempts"]) == ["completed", "failed"]
    assert all(Decimal(str(a["amount"])) == Decimal("10000") for a in data["attempts"])


def test_transfer_history_requires_sender(client: TestClient):
    assert client.get("/v1/transfers/history").status_code == 422


def test_commission_summary(client: TestClient, platform: AsyncMock):
    platform.list_transfer_rows.return_value = [{"amount": 100000, "fees": 1000, "status": "completed"}]
    platform.list_withdrawal_rows.return_value = [{"amount": 40000, "status": "completed"}]

    response = client.get("/v1/commissions/summary", params={"agent_id": "agent-1"})

    assert response.status_code == 200
    data = response.json()
    assert data["currency"] == "XAF"
    assert Decimal(str(data["agent_transfer_commission"])) == Decimal("1000")
    assert Decimal(str(data["agent_withdrawal_commission"])) == Decimal("200")
    assert Decimal(str(data["agent_total_commission"])) == Decimal("1200")
    assert Decimal(str(data["enterprise_transfer_commission"])) == Decimal("5500")
    assert Decimal(str(data["enterprise_withdrawal_commission"])) == Decimal("400")
    assert Decimal(str(data["enterprise_total_commission"])) == Decimal("5900")
    platform.list_transfer_rows.assert_awaited_once_with("agent-1")


def test_commission_summary_display_currency(client: TestClient, platform: AsyncMock):
    platform.list_transfer_rows.return_value = [{"amount": "65595.7"}]

    response = client.get("/v1/commissions/summary", params={"agent_id": "agent-1", "currency": "eur"})

    data = response.json()
    assert data["currency"] == "EUR"
    assert Decimal(str(data["agent_transfer_commission"])) == Decimal("1")


def test_commission_summary_unsupported_currency(client: TestClient):
    response = client.get("/v1/commissions/summary", params={"agent_id": "agent-1", "currency": "ZZZ"})

    assert response.status_code == 400


def test_commission_summary_platform_down(client: TestClient, platform: AsyncMock):
    platform.list_transfer_rows.side_effect = PlatformUnavailableError("timeout")

    response = client.get("/v1/commissions/summary", params={"agent_id": "agent-1"})

    assert response.status_code == 503


@pytest.mark.parametrize("request_id", ["req-123", None])
def test_request_id_header(client: TestClient, request_id):
    headers = {"X-Request-ID": request_id} if request_id else {}

    response = client.get("/health", headers=headers)

    assert response.headers["X-Request-ID"]
    if request_id:
        assert response.headers["X-Request-ID"] == request_id
