"""Pytest fixtures for testing"""

import pytest
from decimal import Decimal
from typing import Generator
from unittest.mock import AsyncMock
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from moneyflow_gateway.api.dependencies import get_platform_client
from moneyflow_gateway.api.main import create_app
from moneyflow_gateway.domain.models import SenderRole, TransferRequest
from moneyflow_gateway.infrastructure.clients.platform import PlatformClient
from moneyflow_gateway.infrastructure.database.models import Base
from moneyflow_gateway.infrastructure.database.session import get_db


# Test database
TEST_DATABASE_URL = "sqlite://"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False}, poolclass=StaticPool)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def platform() -> AsyncMock:
    """Data platform fake: sender has 20 000 XAF and every call succeeds"""
    fake = AsyncMock(spec=PlatformClient)
    fake.get_balance.return_value = Decimal("20000")
    fake.get_monthly_sent_total.return_value = Decimal("0")
    fake.atomic_process_transfer.return_value = "transfer-1"
    fake.adjust_balance.return_value = Decimal("9900")
    fake.create_transfer_record.return_value = "transfer-fallback-1"
    fake.create_pending_transfer_claim.return_value = "claim-1"
    fake.resolve_account_by_identifier.return_value = None
    fake.record_merchant_payment.return_value = None
    fake.dispatch_notification.return_value = None
    fake.list_transfer_rows.return_value = []
    fake.list_withdrawal_rows.return_value = []
    return fake


@pytest.fixture
def client(db: Session, platform: AsyncMock) -> TestClient:
    """Create FastAPI test client with test database and fake platform"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_platform_client] = lambda: platform
    return TestClient(app)


@pytest.fixture
def transfer_request() -> TransferRequest:
    """National agent transfer of 10 000 XAF"""
    return TransferRequest(
        amount=Decimal("10000"),
        sender_id="agent-1",
        sender_role=SenderRole.AGENT,
        sender_country="Cameroun",
        recipient_identifier="+237690000001",
        recipient_country="Cameroun",
        recipient_full_name="Awa Ndiaye",
    )
