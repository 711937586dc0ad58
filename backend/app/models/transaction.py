"""
Transaction database model.

Payment record for a transport; the amounts come from its pricing snapshot.
"""

from sqlalchemy import Column, Integer, String, Float, ForeignKey, DateTime, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from backend.app.db.session import Base
from backend.app.models.enums import TransactionStatus


class Transaction(Base):
    """Transaction model (one per transport)."""
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    transport_id = Column(Integer, ForeignKey("transports.id"), nullable=False, unique=True, index=True)
    status = Column(Enum(TransactionStatus), default=TransactionStatus.PENDING, nullable=False, index=True)
    amount = Column(Float, nullable=False)
    currency = Column(String(3), nullable=False, default="usd")

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    transport = relationship("Transport")

    def __repr__(self):
        return f"<Transaction(id={self.id}, transport_id={self.transport_id}, status='{self.status.value}')>"
