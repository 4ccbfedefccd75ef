from sqlalchemy import Column, Integer, String, DateTime
from datetime import datetime
from app.db.base import Base


class Payment(Base):
    """
    Stores one row per Stripe Checkout Session.

    Audit trail only: entitlement lives on users.has_paid and is set
    exclusively by the verified webhook.
    """

    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    identity_key = Column(String, nullable=False, index=True)

    provider = Column(String, nullable=False, default="stripe")
    checkout_session_id = Column(String, nullable=False, unique=True, index=True)

    # Amount in minor units (cents), as Stripe reports it
    amount_total = Column(Integer, nullable=True)
    currency = Column(String, nullable=True)

    # open -> paid | unpaid | failed | expired
    status = Column(String, nullable=False, default="open")

    paid_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
