"""
Injectable time source for transition timestamps.
"""

from collections.abc import Callable
from datetime import UTC, datetime

from cardledger.config import LEDGER_DATE_FORMAT

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(UTC)


def ledger_timestamp(clock: Clock) -> str:
    """Format the clock's current time, e.g. "2017-03-02 01:04:05 PM"."""
    return clock().strftime(LEDGER_DATE_FORMAT)
