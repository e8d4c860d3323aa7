"""Timezone choices offered to account holders."""

from __future__ import annotations

from datetime import datetime

import pytz


def format_offset(zone: str, moment: datetime) -> str:
    """Return ``"(GMT +HH:MM) <zone>"`` for ``zone`` at the UTC instant ``moment``."""
    offset = moment.astimezone(pytz.timezone(zone)).utcoffset()
    total_minutes = int(offset.total_seconds() // 60) if offset is not None else 0
    sign = "-" if total_minutes < 0 else "+"
    hours, minutes = divmod(abs(total_minutes), 60)
    return f"(GMT {sign}{hours:02d}:{minutes:02d}) {zone}"


def list_timezones(now: datetime | None = None) -> dict[str, str]:
    """Map every common IANA zone id to a label carrying its current UTC offset."""
    moment = now if now is not None else datetime.now(pytz.UTC)
    if moment.tzinfo is None:
        moment = pytz.UTC.localize(moment)
    return {zone: format_offset(zone, moment) for zone in pytz.common_timezones}
