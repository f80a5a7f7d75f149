"""Wall-clock access and the wire format for timestamps.

Every timestamp the services store or return is ISO-8601 UTC with second
precision and a literal "Z" suffix, e.g. ``2024-05-01T09:30:00Z``.  The
fixed width means lexicographic order equals chronological order, which
the enrolled-courses view relies on when it sorts by recency.
"""

from __future__ import annotations

import datetime
from typing import Protocol

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


class Clock(Protocol):
    def now(self) -> datetime.datetime: ...


class SystemClock:
    def now(self) -> datetime.datetime:
        return datetime.datetime.now(datetime.UTC)


def format_timestamp(moment: datetime.datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=datetime.UTC)
    return moment.astimezone(datetime.UTC).strftime(TIMESTAMP_FORMAT)


def epoch_millis(moment: datetime.datetime) -> int:
    return int(moment.timestamp() * 1000)


SYSTEM_CLOCK: Clock = SystemClock()
