"""Bootstrap claim marker"""

from datetime import datetime
from sqlalchemy import Column, String, DateTime

from hms_api.database import Base


FIRST_MASTER_ADMIN = "first_master_admin"


class BootstrapClaim(Base):
    """One row per one-time bootstrap step; the primary key serializes racing claimants"""
    __tablename__ = "bootstrap_claims"

    name = Column(String(64), primary_key=True)
    created_at = Column(DateTime, default=datetime.utcnow)
