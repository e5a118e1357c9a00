"""Mill rate history model"""
from sqlalchemy import Column, Integer, DateTime, Text, ForeignKey, Numeric, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
from portfolio.database import Base


class MillRateHistory(Base):
    """Mill rate a place levied in a given year (dollars per $1,000 assessed)"""
    __tablename__ = "mill_rate_histories"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    place_id = Column(Integer, ForeignKey("places.id"), nullable=False, index=True)

    year = Column(Integer, nullable=False)
    mill_rate = Column(Numeric(10, 4), nullable=False)
    notes = Column(Text, nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    place = relationship("Place", back_populates="mill_rate_histories")

    __table_args__ = (
        UniqueConstraint("place_id", "year", name="uq_mill_rate_place_year"),
    )
