"""Property valuation history model"""
from sqlalchemy import Column, Integer, DateTime, Text, ForeignKey, Numeric, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
from portfolio.database import Base


class PropertyValuationHistory(Base):
    """Assessment of a property for a given year"""
    __tablename__ = "property_valuation_histories"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    property_id = Column(Integer, ForeignKey("properties.id"), nullable=False, index=True)

    year = Column(Integer, nullable=False)
    assessed_value = Column(Numeric(15, 2), nullable=True)
    market_value = Column(Numeric(15, 2), nullable=True)
    assessment_date = Column(DateTime, nullable=True)
    assessment_notes = Column(Text, nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    property = relationship("Property", back_populates="valuation_histories")

    __table_args__ = (
        UniqueConstraint("property_id", "year", name="uq_valuation_property_year"),
    )
