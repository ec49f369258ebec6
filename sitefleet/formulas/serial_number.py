"""Serial number consistency checks over a set of batteries."""

from collections import Counter
from collections.abc import Iterable, Sequence
from typing import Any

SN_STATUS_OK = 0
SN_STATUS_MISSING = 1
SN_STATUS_DUPLICATE = 2


def get_sns(batteries: Iterable[Any]) -> list[str | None]:
    return [battery.serial_number for battery in batteries]


def get_sn_status(sns: Sequence[str | None]) -> int:
    """Classify a serial number set: ok, some missing, or duplicates present."""
    normalized = [sn.strip().upper() for sn in sns if sn and sn.strip()]
    if any(count > 1 for count in Counter(normalized).values()):
        return SN_STATUS_DUPLICATE
    if len(normalized) < len(sns):
        return SN_STATUS_MISSING
    return SN_STATUS_OK
