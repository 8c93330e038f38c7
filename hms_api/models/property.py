"""Property (tenant) model"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum
from sqlalchemy.orm import relationship
import enum

from hms_api.database import Base


class PropertyType(str, enum.Enum):
    HOTEL = "HOTEL"
    RESTAURANT = "RESTAURANT"


class Property(Base):
    """Hotel or restaurant tenant"""
    __tablename__ = "properties"

    id = Column(Integer, primary_key=True, autoincrement=True)
    code = Column(String(50), unique=True, nullable=False)
    name = Column(String(150), nullable=False)
    property_type = Column(Enum(PropertyType, name="property_type"), nullable=False)

    # Address
    address_line1 = Column(String(200))
    address_line2 = Column(String(200))
    city = Column(String(80))
    state = Column(String(80))
    country = Column(String(80))
    postal_code = Column(String(20))
    timezone = Column(String(64), default="Asia/Kolkata")

    # Business and contact
    gstin = Column(String(20))
    phone = Column(String(32))
    email = Column(String(254))
    website = Column(String(200))

    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    users = relationship("User", back_populates="property")
