"""Block showing the current date and time."""

from __future__ import annotations

import locale
import re
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone as dt_timezone
from typing import Callable, Iterator
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .base import BlockError, TextWidget

_ALIASES = {
    "R": "%H:%M",
    "T": "%H:%M:%S",
    "D": "%m/%d/%y",
    "F": "%Y-%m-%d",
}
_SPECIFIER = re.compile(r"%(.)", re.DOTALL)


def _expand_aliases(fmt: str) -> str:
    return _SPECIFIER.sub(lambda m: _ALIASES.get(m.group(1), m.group(0)), fmt)


def _zone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise BlockError("time", f"invalid timezone '{name}'") from exc


def format_time(fmt: str, timezone: str | None, now: datetime | None = None) -> str:
    """Format ``now`` (default: the current time) in the given zone, or local time."""
    if now is None:
        now = datetime.now(dt_timezone.utc)
    if timezone is not None:
        now = now.astimezone(_zone(timezone))
    elif now.tzinfo is not None:
        now = now.astimezone()
    return now.strftime(_expand_aliases(fmt))


@contextmanager
def _localized(name: str | None) -> Iterator[None]:
    if name is None:
        yield
        return
    previous = locale.setlocale(locale.LC_TIME)
    try:
        locale.setlocale(locale.LC_TIME, name)
    except locale.Error as exc:
        raise BlockError("time", "invalid locale") from exc
    try:
        yield
    finally:
        locale.setlocale(locale.LC_TIME, previous)


@dataclass
class TimeConfig:
    """Settings of the time block."""

    format: str = "%a %d/%m %R"
    interval: float = 5.0
    timezone: str | None = None
    locale: str | None = None


class Time:
    """Shows the current time."""

    def __init__(
        self,
        config: TimeConfig | None = None,
        *,
        block_id: int = 0,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.config = config or TimeConfig()
        if self.config.timezone is not None:
            _zone(self.config.timezone)
        self.id = block_id
        self.clock = clock or (lambda: datetime.now(dt_timezone.utc))
        self.time = TextWidget(instance=0, text="", icon="time")

    def update(self) -> float | None:
        with _localized(self.config.locale):
            self.time.text = format_time(self.config.format, self.config.timezone, self.clock())
        return self.config.interval

    def view(self) -> list[TextWidget]:
        return [self.time]