"""Plan expiry arithmetic.

All timestamps are stored and compared in UTC. Plans are sold in whole local
calendar days, so expiry is rounded to the start of the local day using one
fixed offset. Every expiry computation in the service goes through this module.
"""

from datetime import datetime, timedelta, timezone

# Myanmar Standard Time. Fixed, no DST.
LOCAL_UTC_OFFSET = timedelta(hours=6, minutes=30)
LOCAL_TZ = timezone(LOCAL_UTC_OFFSET, "MMT")


def _as_utc(instant: datetime) -> datetime:
    # Naive datetimes coming back from some drivers are UTC by convention.
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def local_day_boundary(instant: datetime, offset: timedelta = LOCAL_UTC_OFFSET) -> datetime:
    """Return the UTC instant at which the local calendar day containing `instant` began."""
    local = _as_utc(instant) + offset
    start_of_local_day = local.replace(hour=0, minute=0, second=0, microsecond=0)
    return start_of_local_day - offset


def calculate_expiry(plan_days: int, now: datetime) -> datetime:
    """Expiry for a new plan: start of today (local) plus `plan_days` days."""
    return local_day_boundary(now) + timedelta(days=plan_days)


def extend_expiry(current_expiry: datetime, plan_days: int, now: datetime) -> datetime:
    """Extend from the later of the current expiry and now, so unused days are kept."""
    base = max(_as_utc(current_expiry), _as_utc(now))
    return local_day_boundary(base) + timedelta(days=plan_days)


def is_expired(expires_at: datetime, now: datetime) -> bool:
    return _as_utc(expires_at) <= _as_utc(now)


def to_local(instant: datetime) -> datetime:
    """Render a stored UTC instant in the fixed local offset for display."""
    return _as_utc(instant).astimezone(LOCAL_TZ)
