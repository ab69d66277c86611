from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Timezone-aware now; default clock for services (tests inject their own)."""
    return datetime.now(timezone.utc)
