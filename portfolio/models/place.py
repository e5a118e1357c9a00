"""Place model for the state / county / town hierarchy"""
from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey, Enum, Numeric, Index, func
from sqlalchemy.orm import relationship
from datetime import datetime
from portfolio.database import Base
import enum


class PlaceKind(str, enum.Enum):
    """Level of a place in the geographic hierarchy"""
    STATE = "STATE"
    COUNTY = "COUNTY"
    TOWN = "TOWN"
    UT = "UT"  # Unorganized territory
    CITY = "CITY"


class Place(Base):
    """A state, county or municipality that properties and deals sit in"""
    __tablename__ = "places"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # Identification
    name = Column(String(255), nullable=False)
    kind = Column(Enum(PlaceKind), default=PlaceKind.TOWN, nullable=False)
    state = Column(String(100), nullable=True)
    country = Column(String(100), default="United States")
    description = Column(Text, nullable=True)

    # Hierarchy
    parent_id = Column(Integer, ForeignKey("places.id"), nullable=True)
    county_id = Column(Integer, ForeignKey("places.id"), nullable=True)
    state_place_id = Column(Integer, ForeignKey("places.id"), nullable=True)

    # Mirror of the latest MillRateHistory entry
    mill_rate = Column(Numeric(10, 4), nullable=True)

    # Tax office
    tax_payment_address = Column(Text, nullable=True)
    tax_payment_website = Column(String(500), nullable=True)
    tax_office_phone = Column(String(50), nullable=True)
    tax_due_month = Column(Integer, nullable=True)
    tax_due_day = Column(Integer, nullable=True)
    late_interest_rate = Column(Numeric(6, 3), nullable=True)
    assessment_month = Column(Integer, nullable=True)
    assessment_day = Column(Integer, nullable=True)
    tax_notes = Column(Text, nullable=True)

    # Zoning office
    zoning_office_address = Column(Text, nullable=True)
    zoning_office_phone = Column(String(50), nullable=True)
    zoning_office_website_url = Column(String(500), nullable=True)

    # Code enforcement officer
    ceo_name = Column(String(255), nullable=True)
    ceo_email = Column(String(255), nullable=True)
    ceo_phone = Column(String(50), nullable=True)

    # Plumbing inspector
    plumbing_inspector_name = Column(String(255), nullable=True)
    plumbing_inspector_email = Column(String(255), nullable=True)
    plumbing_inspector_phone = Column(String(50), nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    properties = relationship("Property", back_populates="place")
    deals = relationship("Deal", back_populates="place")
    mill_rate_histories = relationship(
        "MillRateHistory",
        back_populates="place",
        cascade="all, delete-orphan",
        order_by="desc(MillRateHistory.year)",
    )

    __table_args__ = (
        # NULL state/parent would never collide in a plain unique constraint
        Index(
            "uq_places_owner_scope",
            "owner_id",
            "name",
            "kind",
            func.coalesce(state, ""),
            func.coalesce(parent_id, 0),
            unique=True,
        ),
    )
