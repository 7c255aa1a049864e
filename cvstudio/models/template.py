"""
CV Template Model
Stores layout templates (background pages + positioned fields) per owner
"""

from sqlalchemy import Column, String, DateTime, func, Text, JSON
from cvstudio.database import Base


class CVTemplate(Base):
    __tablename__ = "cv_templates"
    
    id = Column(String(36), primary_key=True)
    owner_id = Column(String(64), nullable=False, index=True)
    
    # Template info
    name = Column(String(100), nullable=False)
    office_name = Column(String(200), nullable=False, default="")
    country = Column(String(20), nullable=False, index=True)
    
    # Background page URLs and field layout (JSON, percentage geometry)
    pages = Column(JSON, nullable=False, default=list)
    fields = Column(JSON, nullable=False, default=list)
    
    # Metadata
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
