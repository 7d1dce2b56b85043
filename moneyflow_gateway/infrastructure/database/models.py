"""SQLAlchemy ORM models for the settlement audit log"""

import uuid
from sqlalchemy import Column, Boolean, DateTime, Numeric, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class SettlementAttempt(Base):
    """One transfer settlement attempt and its terminal outcome"""

    __tablename__ = "settlement_attempt"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    request_id = Column(Text, nullable=True)
    sender_id = Column(Text, nullable=False, index=True)
    sender_role = Column(Text, nullable=False)
    recipient_identifier = Column(Text, nullable=False)
    recipient_country = Column(Text, nullable=False)
    amount = Column(Numeric(18, 4), nullable=False)
    fee_amount = Column(Numeric(18, 4), nullable=True)
    status = Column(Text, nullable=False)  # completed | pending_claim | failed
    failure_reason = Column(Text, nullable=True, index=True)
    detail = Column(Text, nullable=True)
    money_moved = Column(Boolean, nullable=False, default=False)
    transfer_id = Column(Text, nullable=True)
    claim_code = Column(Text, nullable=True)
    reconciled = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
