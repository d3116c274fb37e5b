"""
Daily credit ledger.

Tracks how many generations each user has consumed per UTC day and reports
the remaining allowance against a fixed daily limit.
"""

import threading
from datetime import datetime, time, timedelta
from typing import Any

from itinerary_pipeline.config import config
from itinerary_pipeline.services.interfaces import CreditBalance
from itinerary_pipeline.utils.error_handling import InsufficientCreditsError
from itinerary_pipeline.utils.helpers import utc_now
from itinerary_pipeline.utils.logging import get_logger

logger = get_logger(__name__)


class DailyCreditService:
    """In-memory per-user, per-day usage ledger."""

    def __init__(self, daily_limit: int | None = None):
        self.daily_limit = (
            daily_limit if daily_limit is not None else config.pipeline.daily_credit_limit
        )
        self._usage: dict[tuple[str, str], dict[str, Any]] = {}
        self._lock = threading.Lock()

    async def get_balance(self, user_id: str) -> CreditBalance:
        """Get the remaining allowance for a user today."""
        with self._lock:
            used = self._usage.get(self._key(user_id), {}).get("used", 0)
        return self._balance(user_id, used)

    async def consume(self, user_id: str, amount: int, service_tag: str) -> CreditBalance:
        """
        Record usage for a user.

        Args:
            user_id: User to charge
            amount: Number of credits to consume
            service_tag: Label of the consuming service

        Returns:
            The balance after consumption

        Raises:
            InsufficientCreditsError: If the user does not have enough credits left
        """
        key = self._key(user_id)
        with self._lock:
            entry = self._usage.setdefault(key, {"used": 0, "services": {}})
            remaining = self.daily_limit - entry["used"]
            if amount > remaining:
                raise InsufficientCreditsError(amount, max(0, remaining), service_tag)
            entry["used"] += amount
            entry["services"][service_tag] = entry["services"].get(service_tag, 0) + amount
            used = entry["used"]

        logger.debug(f"User {user_id} consumed {amount} credit(s) for {service_tag}")
        return self._balance(user_id, used)

    def get_usage(self, user_id: str, day: str | None = None) -> dict[str, Any]:
        """Get usage for a user on a specific day (ISO date, default today)."""
        with self._lock:
            entry = self._usage.get((user_id, day or self._today()))
            if not entry:
                return {"used": 0, "services": {}}
            return {"used": entry["used"], "services": dict(entry["services"])}

    def _balance(self, user_id: str, used: int) -> CreditBalance:
        today = utc_now().date()
        return CreditBalance(
            user_id=user_id,
            remaining_today=max(0, self.daily_limit - used),
            daily_limit=self.daily_limit,
            used_today=used,
            resets_at=datetime.combine(today + timedelta(days=1), time.min, tzinfo=utc_now().tzinfo),
        )

    def _key(self, user_id: str) -> tuple[str, str]:
        return user_id, self._today()

    @staticmethod
    def _today() -> str:
        return utc_now().date().isoformat()
