"""
Usage Tracking Service
Counts generated CVs per agency
"""

import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Optional

from cvstudio.config import settings
from cvstudio.database import database as default_database

logger = logging.getLogger(__name__)


class UsageTracker(ABC):

    async def track(self, owner_id: str, amount: int) -> None:
        """Record produced documents; never raises"""
        if amount <= 0:
            return
        try:
            await self._increment(owner_id, amount)
        except Exception as e:
            logger.warning("Usage tracking failed for %s (+%d): %s", owner_id, amount, e)

    @abstractmethod
    async def _increment(self, owner_id: str, amount: int) -> None:
        ...

    @abstractmethod
    async def count(self, owner_id: str) -> int:
        ...


class DatabaseUsageTracker(UsageTracker):
    """agency_profiles.cv_generated_count"""

    def __init__(self, database=None):
        self.database = database if database is not None else default_database

    async def _increment(self, owner_id: str, amount: int) -> None:
        updated = await self.database.fetch_one(
            """
            UPDATE agency_profiles
            SET cv_generated_count = COALESCE(cv_generated_count, 0) + :amount
            WHERE id = :owner_id
            RETURNING cv_generated_count
            """,
            {"owner_id": owner_id, "amount": amount}
        )
        if updated is None:
            await self.database.execute(
                """
                INSERT INTO agency_profiles (id, agency_name, cv_generated_count)
                VALUES (:owner_id, :agency_name, :amount)
                """,
                {"owner_id": owner_id, "agency_name": settings.DEFAULT_AGENCY_NAME, "amount": amount}
            )

    async def count(self, owner_id: str) -> int:
        row = await self.database.fetch_one(
            "SELECT cv_generated_count FROM agency_profiles WHERE id = :owner_id",
            {"owner_id": owner_id}
        )
        return int(row["cv_generated_count"] or 0) if row else 0


class InMemoryUsageTracker(UsageTracker):

    def __init__(self):
        self.counts = defaultdict(int)

    async def _increment(self, owner_id: str, amount: int) -> None:
        self.counts[owner_id] += amount

    async def count(self, owner_id: str) -> int:
        return self.counts[owner_id]


_tracker: Optional[UsageTracker] = None


def get_usage_tracker() -> UsageTracker:
    """Dependency: tracker for the configured backend"""
    global _tracker
    if _tracker is None:
        _tracker = InMemoryUsageTracker() if settings.STORE_BACKEND == "memory" else DatabaseUsageTracker()
    return _tracker
