"""
Database Models
Import all models here for Alembic migrations
"""

from cvstudio.models.template import CVTemplate
from cvstudio.models.profile import AgencyProfile

__all__ = [
    "CVTemplate",
    "AgencyProfile",
]
