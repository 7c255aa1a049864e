"""
Agency Profile Model
Usage counters for the agency that owns templates
"""

from sqlalchemy import Column, String, Integer, DateTime, func
from cvstudio.database import Base


class AgencyProfile(Base):
    __tablename__ = "agency_profiles"

    id = Column(String(64), primary_key=True)
    agency_name = Column(String(200), nullable=True)

    # Generated documents counter
    cv_generated_count = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
