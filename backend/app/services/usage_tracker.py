import logging
from datetime import datetime
from typing import Callable, List, Optional

from sqlalchemy import update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session, sessionmaker

from app.models.api_usage import ApiUsage

logger = logging.getLogger(__name__)

_DIALECT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def dialect_insert(db: Session, table):
    """INSERT construct supporting ON CONFLICT for the session's database."""
    dialect = db.get_bind().dialect.name
    try:
        return _DIALECT_INSERTS[dialect](table)
    except KeyError:
        raise RuntimeError(f"Unsupported database dialect for upserts: {dialect}")


class UsageTracker:
    """
    Per-provider, per-month API call counters.

    Every record() is an upsert of the (provider, month) row followed by a single
    UPDATE that increments the counters in SQL, so overlapping searches never
    lose increments.
    """

    def __init__(self, session_factory: sessionmaker, clock: Callable[[], datetime] = datetime.now):
        self._session_factory = session_factory
        self._clock = clock

    def current_month(self) -> str:
        return self._clock().strftime("%Y-%m")

    async def record(self, provider: str, success: bool, rate_limited: bool = False) -> None:
        now = self._clock()
        month = now.strftime("%Y-%m")

        db = self._session_factory()
        try:
            stmt = dialect_insert(db, ApiUsage).values(
                api_provider=provider,
                month=month,
                call_count=0,
                success_count=0,
                fail_count=0,
                rate_limit_count=0,
            )
            stmt = stmt.on_conflict_do_nothing(index_elements=["api_provider", "month"])
            db.execute(stmt)

            increments = {
                "call_count": ApiUsage.call_count + 1,
                "last_called_at": now,
            }
            if success:
                increments["success_count"] = ApiUsage.success_count + 1
            else:
                increments["fail_count"] = ApiUsage.fail_count + 1
            if rate_limited:
                increments["rate_limit_count"] = ApiUsage.rate_limit_count + 1

            db.execute(
                update(ApiUsage)
                .where(ApiUsage.api_provider == provider, ApiUsage.month == month)
                .values(**increments)
            )
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

        logger.debug(f"[Usage] {provider} {month}: success={success} rate_limited={rate_limited}")

    async def get_usage(self, month: Optional[str] = None) -> List[ApiUsage]:
        """Usage rows for a month (default: the current one), by provider name."""
        month = month or self.current_month()
        db = self._session_factory()
        try:
            return (
                db.query(ApiUsage)
                .filter(ApiUsage.month == month)
                .order_by(ApiUsage.api_provider.asc())
                .all()
            )
        finally:
            db.close()

    async def get_provider_usage(self, provider: str, month: Optional[str] = None) -> Optional[ApiUsage]:
        month = month or self.current_month()
        db = self._session_factory()
        try:
            return (
                db.query(ApiUsage)
                .filter(ApiUsage.api_provider == provider, ApiUsage.month == month)
                .first()
            )
        finally:
            db.close()
