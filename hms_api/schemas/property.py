"""Property schemas"""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, EmailStr, Field

from hms_api.models.property import PropertyType
from hms_api.models.user import UserType
from hms_api.schemas.auth import PHONE_PATTERN
from hms_api.schemas.common import Pagination


class PropertyCreate(BaseModel):
    """Create property request"""
    code: str = Field(min_length=2, max_length=50)
    name: str = Field(min_length=2, max_length=150)
    property_type: PropertyType
    address_line1: Optional[str] = Field(default=None, max_length=200)
    address_line2: Optional[str] = Field(default=None, max_length=200)
    city: Optional[str] = Field(default=None, max_length=80)
    state: Optional[str] = Field(default=None, max_length=80)
    country: Optional[str] = Field(default=None, max_length=80)
    postal_code: Optional[str] = Field(default=None, max_length=20)
    timezone: str = Field(default="Asia/Kolkata", max_length=64)
    gstin: Optional[str] = Field(default=None, max_length=20)
    phone: Optional[str] = Field(default=None, pattern=PHONE_PATTERN)
    email: Optional[EmailStr] = None
    website: Optional[str] = Field(default=None, max_length=200)


class PropertyUpdate(BaseModel):
    """Update property request; property_type is fixed after creation"""
    code: Optional[str] = Field(default=None, min_length=2, max_length=50)
    name: Optional[str] = Field(default=None, min_length=2, max_length=150)
    address_line1: Optional[str] = Field(default=None, max_length=200)
    address_line2: Optional[str] = Field(default=None, max_length=200)
    city: Optional[str] = Field(default=None, max_length=80)
    state: Optional[str] = Field(default=None, max_length=80)
    country: Optional[str] = Field(default=None, max_length=80)
    postal_code: Optional[str] = Field(default=None, max_length=20)
    timezone: Optional[str] = Field(default=None, max_length=64)
    gstin: Optional[str] = Field(default=None, max_length=20)
    phone: Optional[str] = Field(default=None, pattern=PHONE_PATTERN)
    email: Optional[EmailStr] = None
    website: Optional[str] = Field(default=None, max_length=200)
    is_active: Optional[bool] = None


class PropertyUserSummary(BaseModel):
    id: int
    full_name: str
    email: Optional[str]
    user_type: UserType
    is_active: bool

    class Config:
        from_attributes = True


class PropertyResponse(BaseModel):
    """Property response"""
    id: int
    code: str
    name: str
    property_type: PropertyType
    address_line1: Optional[str]
    address_line2: Optional[str]
    city: Optional[str]
    state: Optional[str]
    country: Optional[str]
    postal_code: Optional[str]
    timezone: Optional[str]
    gstin: Optional[str]
    phone: Optional[str]
    email: Optional[str]
    website: Optional[str]
    is_active: bool
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


class PropertyDetail(PropertyResponse):
    users: List[PropertyUserSummary] = []


class PropertyData(BaseModel):
    property: PropertyResponse


class PropertyDetailData(BaseModel):
    property: PropertyDetail


class PropertyListData(BaseModel):
    properties: List[PropertyDetail]
    pagination: Pagination


class PropertyOverview(BaseModel):
    total_properties: int
    active_properties: int
    inactive_properties: int
    hotels: int
    restaurants: int


class PropertyUserStats(BaseModel):
    property_id: int
    property_name: str
    property_type: PropertyType
    total_users: int
    admins: int
    staff: int


class PropertyStatsData(BaseModel):
    overview: PropertyOverview
    property_details: List[PropertyUserStats]
