"""Property model for owned real estate"""
from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey, Numeric, Float, Boolean, Index
from sqlalchemy.orm import relationship
from datetime import datetime
from portfolio.database import Base


class Property(Base):
    """A property in the owner's portfolio"""
    __tablename__ = "properties"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # Basic information
    name = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    type = Column(String(100), nullable=True)
    available = Column(Boolean, default=True)

    # Address information
    street_address = Column(String(255), nullable=True)
    city = Column(String(100), nullable=True)
    state = Column(String(100), nullable=True)
    zip_code = Column(String(10), nullable=True)
    place_id = Column(Integer, ForeignKey("places.id"), nullable=True, index=True)

    # Land
    acres = Column(Float, nullable=True)
    zoning = Column(String(100), nullable=True)

    # Purchase
    purchase_price = Column(Numeric(15, 2), nullable=True)
    earnest_money = Column(Numeric(15, 2), nullable=True)
    closing_date = Column(DateTime, nullable=True)

    # Financing
    financing_type = Column(String(100), nullable=True)
    financing_terms = Column(Text, nullable=True)
    balloon_due_date = Column(DateTime, nullable=True)

    # Closing costs
    title_settlement_fee = Column(Numeric(15, 2), nullable=True)
    title_examination = Column(Numeric(15, 2), nullable=True)
    owners_policy_premium = Column(Numeric(15, 2), nullable=True)
    recording_fees_deed = Column(Numeric(15, 2), nullable=True)
    state_tax_stamps = Column(Numeric(15, 2), nullable=True)
    e_recording_fee = Column(Numeric(15, 2), nullable=True)
    property_tax_proration = Column(Numeric(15, 2), nullable=True)
    real_estate_commission = Column(Numeric(15, 2), nullable=True)

    # People
    seller_id = Column(Integer, ForeignKey("people.id"), nullable=True)
    seller_agent_id = Column(Integer, ForeignKey("people.id"), nullable=True)
    buyer_agent_id = Column(Integer, ForeignKey("people.id"), nullable=True)
    title_company_id = Column(Integer, ForeignKey("people.id"), nullable=True)

    # Mirror of the latest PropertyValuationHistory entry
    assessed_value = Column(Numeric(15, 2), nullable=True)
    market_value = Column(Numeric(15, 2), nullable=True)
    last_assessment_date = Column(DateTime, nullable=True)
    assessment_notes = Column(Text, nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    place = relationship("Place", back_populates="properties")
    seller = relationship("Person", back_populates="properties_as_seller", foreign_keys=[seller_id])
    seller_agent = relationship("Person", back_populates="properties_as_seller_agent", foreign_keys=[seller_agent_id])
    buyer_agent = relationship("Person", back_populates="properties_as_buyer_agent", foreign_keys=[buyer_agent_id])
    title_company = relationship("Person", back_populates="properties_as_title_company", foreign_keys=[title_company_id])
    original_deal = relationship(
        "Deal",
        back_populates="promoted_property",
        foreign_keys="Deal.promoted_to_property_id",
        uselist=False,
    )
    valuation_histories = relationship(
        "PropertyValuationHistory",
        back_populates="property",
        cascade="all, delete-orphan",
        order_by="desc(PropertyValuationHistory.year)",
    )
    tax_payments = relationship(
        "TaxPayment",
        back_populates="property",
        cascade="all, delete-orphan",
        order_by="desc(TaxPayment.year)",
    )

    __table_args__ = (
        Index("ix_property_owner_address", "owner_id", "street_address", "city"),
    )
