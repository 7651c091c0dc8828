from datetime import datetime
from zoneinfo import ZoneInfo

from coopledger.core.config import settings

SOCIETY_TZ = ZoneInfo(settings.timezone)


def now_local() -> datetime:
    return datetime.now(tz=SOCIETY_TZ)

def as_local(dt: datetime | None) -> datetime | None:
    """Attach the society timezone to a naive value read back from the database."""
    if dt is None or dt.tzinfo is not None:
        return dt
    return dt.replace(tzinfo=SOCIETY_TZ)
