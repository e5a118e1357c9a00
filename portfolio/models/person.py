"""Person model for contacts (sellers, agents, title companies)"""
from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
from portfolio.database import Base


class Person(Base):
    """A contact; names are unique per owner and matched exactly"""
    __tablename__ = "people"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    company = Column(String(255), nullable=True)
    role = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships, one per role a person can hold
    properties_as_seller = relationship(
        "Property", back_populates="seller", foreign_keys="Property.seller_id"
    )
    properties_as_seller_agent = relationship(
        "Property", back_populates="seller_agent", foreign_keys="Property.seller_agent_id"
    )
    properties_as_buyer_agent = relationship(
        "Property", back_populates="buyer_agent", foreign_keys="Property.buyer_agent_id"
    )
    properties_as_title_company = relationship(
        "Property", back_populates="title_company", foreign_keys="Property.title_company_id"
    )
    deals_as_seller = relationship(
        "Deal", back_populates="seller", foreign_keys="Deal.seller_id"
    )
    deals_as_seller_agent = relationship(
        "Deal", back_populates="seller_agent", foreign_keys="Deal.seller_agent_id"
    )
    deals_as_buyer_agent = relationship(
        "Deal", back_populates="buyer_agent", foreign_keys="Deal.buyer_agent_id"
    )
    deals_as_title_company = relationship(
        "Deal", back_populates="title_company", foreign_keys="Deal.title_company_id"
    )

    __table_args__ = (
        UniqueConstraint("owner_id", "name", name="uq_people_owner_name"),
    )
