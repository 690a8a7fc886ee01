"""A pomodoro timer block."""

from __future__ import annotations

import enum
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from .base import BlockError, ClickEvent, MouseButton, TextWidget


class Phase(enum.Enum):
    """Where the timer is in its cycle."""

    STOPPED = "\u25a0"
    STARTED = "\uf04b"
    PAUSED = "\uf04c"
    ON_BREAK = "\u2615"


@dataclass
class PomodoroConfig:
    """Settings of the pomodoro block; lengths are in minutes."""

    length: int = 25
    break_length: int = 5
    message: str = "Pomodoro over! Take a break!"
    break_message: str = "Break over! Time to work!"
    use_nag: bool = False
    nag_path: Path | str = "i3-nagbar"


class Pomodoro:
    """Counts work periods followed by breaks."""

    update_interval = 1.0

    def __init__(
        self,
        config: PomodoroConfig | None = None,
        *,
        block_id: int = 0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or PomodoroConfig()
        self.id = block_id
        self.clock = clock
        self.length = self.config.length * 60
        self.break_length = self.config.break_length * 60
        self.phase = Phase.STOPPED
        self._mark = 0.0
        self.count = 0
        self.time = TextWidget(instance=0, icon="pomodoro")

    def _elapsed(self) -> float:
        if self.phase in (Phase.STARTED, Phase.ON_BREAK):
            return self.clock() - self._mark
        if self.phase is Phase.PAUSED:
            return self._mark
        return 0.0

    def _start(self, already_elapsed: float = 0.0) -> None:
        self.phase = Phase.STARTED
        self._mark = self.clock() - already_elapsed

    def status_text(self) -> str:
        seconds = int(self._elapsed())
        return f"{self.count} | {self.phase.value} {seconds // 60}:{seconds % 60:02d}"

    def _refresh(self) -> None:
        self.time.text = self.status_text()

    def _nag(self, message: str, level: str) -> None:
        try:
            subprocess.Popen([str(self.config.nag_path), "-t", level, "-m", message])
        except OSError as exc:
            raise BlockError("pomodoro", f"Failed to start {self.config.nag_path}") from exc

    def update(self) -> float | None:
        self._refresh()
        if self.phase is Phase.STARTED and self._elapsed() >= self.length:
            if self.config.use_nag:
                self._nag(self.config.message, "error")
            self.phase = Phase.ON_BREAK
            self._mark = self.clock()
        elif self.phase is Phase.ON_BREAK and self._elapsed() >= self.break_length:
            if self.config.use_nag:
                self._nag(self.config.break_message, "warning")
            self.phase = Phase.STOPPED
            self.count += 1
        return self.update_interval

    def click(self, event: ClickEvent) -> None:
        if event.button is MouseButton.RIGHT:
            self.phase = Phase.STOPPED
            self.count = 0
        elif self.phase is Phase.STARTED:
            self._mark = self._elapsed()
            self.phase = Phase.PAUSED
        elif self.phase is Phase.PAUSED:
            self._start(self._mark)
        else:
            self._start()
        self._refresh()

    def view(self) -> list[TextWidget]:
        return [self.time]