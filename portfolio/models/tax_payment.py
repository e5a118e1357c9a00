"""Tax payment model"""
from sqlalchemy import Column, Integer, DateTime, Text, ForeignKey, Numeric, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
from portfolio.database import Base


class TaxPayment(Base):
    """Property tax actually paid for a year"""
    __tablename__ = "tax_payments"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    property_id = Column(Integer, ForeignKey("properties.id"), nullable=False, index=True)

    year = Column(Integer, nullable=False)
    amount = Column(Numeric(15, 2), nullable=False)
    payment_date = Column(DateTime, nullable=False)
    notes = Column(Text, nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    property = relationship("Property", back_populates="tax_payments")

    __table_args__ = (
        UniqueConstraint("property_id", "year", name="uq_tax_payment_property_year"),
    )
