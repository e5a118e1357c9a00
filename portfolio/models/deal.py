"""Deal model for the acquisition pipeline"""
from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey, Enum, Numeric, Float
from sqlalchemy.orm import relationship
from datetime import datetime
from portfolio.database import Base
import enum


class DealStage(str, enum.Enum):
    """Pipeline stage of a deal"""
    LEAD = "LEAD"
    UNDER_CONTRACT = "UNDER_CONTRACT"
    DUE_DILIGENCE = "DUE_DILIGENCE"
    CLOSING = "CLOSING"
    WON = "WON"
    LOST = "LOST"


class DealStatus(str, enum.Enum):
    """Whether a deal is being worked"""
    ACTIVE = "ACTIVE"
    ON_HOLD = "ON_HOLD"
    CANCELLED = "CANCELLED"


class Deal(Base):
    """An in-progress acquisition, promoted to a Property once won"""
    __tablename__ = "deals"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # Deal information
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    deal_stage = Column(Enum(DealStage), default=DealStage.LEAD, nullable=False, index=True)
    deal_status = Column(Enum(DealStatus), default=DealStatus.ACTIVE, nullable=False)
    target_closing_date = Column(DateTime, nullable=True)
    deal_notes = Column(Text, nullable=True)

    # Address information
    street_address = Column(String(255), nullable=True)
    city = Column(String(100), nullable=True)
    state = Column(String(100), nullable=True)
    zip_code = Column(String(10), nullable=True)
    place_id = Column(Integer, ForeignKey("places.id"), nullable=True, index=True)

    # Land
    acres = Column(Float, nullable=True)
    zoning = Column(String(100), nullable=True)

    # Deal financials
    asking_price = Column(Numeric(15, 2), nullable=True)
    offer_price = Column(Numeric(15, 2), nullable=True)
    earnest_money = Column(Numeric(15, 2), nullable=True)
    estimated_closing_costs = Column(Numeric(15, 2), nullable=True)

    # Purchase
    purchase_price = Column(Numeric(15, 2), nullable=True)
    closing_date = Column(DateTime, nullable=True)

    # Financing
    financing_terms = Column(Text, nullable=True)
    financing_type = Column(String(100), nullable=True)

    # Closing costs
    title_settlement_fee = Column(Numeric(15, 2), nullable=True)
    title_examination = Column(Numeric(15, 2), nullable=True)
    owners_policy_premium = Column(Numeric(15, 2), nullable=True)
    recording_fees_deed = Column(Numeric(15, 2), nullable=True)
    state_tax_stamps = Column(Numeric(15, 2), nullable=True)
    e_recording_fee = Column(Numeric(15, 2), nullable=True)
    real_estate_commission = Column(Numeric(15, 2), nullable=True)

    # People
    seller_id = Column(Integer, ForeignKey("people.id"), nullable=True)
    seller_agent_id = Column(Integer, ForeignKey("people.id"), nullable=True)
    buyer_agent_id = Column(Integer, ForeignKey("people.id"), nullable=True)
    title_company_id = Column(Integer, ForeignKey("people.id"), nullable=True)

    # Promotion (set once)
    promoted_to_property_id = Column(Integer, ForeignKey("properties.id"), nullable=True, unique=True)
    promoted_at = Column(DateTime, nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    place = relationship("Place", back_populates="deals")
    seller = relationship("Person", back_populates="deals_as_seller", foreign_keys=[seller_id])
    seller_agent = relationship("Person", back_populates="deals_as_seller_agent", foreign_keys=[seller_agent_id])
    buyer_agent = relationship("Person", back_populates="deals_as_buyer_agent", foreign_keys=[buyer_agent_id])
    title_company = relationship("Person", back_populates="deals_as_title_company", foreign_keys=[title_company_id])
    promoted_property = relationship(
        "Property",
        back_populates="original_deal",
        foreign_keys=[promoted_to_property_id],
    )
