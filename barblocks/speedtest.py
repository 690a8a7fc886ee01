"""Block running speedtest-cli in the background and showing ping and bandwidth."""

from __future__ import annotations

import queue
import subprocess
import threading
from dataclasses import dataclass
from typing import Callable

from .base import BlockError, ClickEvent, FormatTemplate, MouseButton, Spacing, State, TextWidget

_ICONS = {"ping": "ping", "speed_down": "net_down", "speed_up": "net_up"}


def parse_values(output: str) -> list[float]:
    """Take the number after the label on each line of ``speedtest-cli --simple`` output."""
    values = []
    for line in output.splitlines():
        words = line.split()
        if len(words) < 2:
            raise BlockError("speedtest", "missing data")
        try:
            values.append(float(words[1]))
        except ValueError as exc:
            raise BlockError("speedtest", "Unable to parse data") from exc
    return values


def get_values() -> str:
    """Run ``speedtest-cli --simple`` and return its output."""
    try:
        result = subprocess.run(["speedtest-cli", "--simple"], capture_output=True, check=False)
    except OSError as exc:
        raise BlockError("speedtest", "could not get speedtest-cli output") from exc
    try:
        return result.stdout.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise BlockError("speedtest", "could not parse speedtest-cli output") from exc


def ping_state(ping: float) -> State:
    """State for a ping time given in seconds."""
    millis = int(ping * 1000.0)
    if 0 <= millis <= 25:
        return State.GOOD
    if 26 <= millis <= 60:
        return State.INFO
    if 61 <= millis <= 100:
        return State.WARNING
    return State.CRITICAL


def _format_seconds(seconds: float) -> str:
    return f"{round(seconds * 1000)}ms"


def _format_bits(bits_per_second: float) -> str:
    value = bits_per_second
    for prefix in ("", "K", "M", "G"):
        if abs(value) < 1000:
            return f"{value:.1f}{prefix}b"
        value /= 1000
    return f"{value:.1f}Tb"


@dataclass
class SpeedTestConfig:
    """Settings of the speedtest block."""

    format: str = "{ping}{speed_down}{speed_up}"
    interval: float = 1800.0


class SpeedTest:
    """Measures connection speed on a worker thread and shows the latest result."""

    def __init__(
        self,
        config: SpeedTestConfig | None = None,
        *,
        block_id: int = 0,
        runner: Callable[[], str] = get_values,
        on_result: Callable[[int], None] | None = None,
    ) -> None:
        self.config = config or SpeedTestConfig()
        self.id = block_id
        self.format = FormatTemplate(self.config.format)
        self.widgets: list[TextWidget] = []
        self._runner = runner
        self._on_result = on_result
        self._lock = threading.Lock()
        self._updated = False
        self._values: list[float] = []
        self._requests: queue.SimpleQueue[None] = queue.SimpleQueue()
        threading.Thread(target=self._work, name="speedtest", daemon=True).start()

    def _work(self) -> None:
        while True:
            self._requests.get()
            try:
                values = parse_values(self._runner())
            except BlockError:
                continue
            if len(values) != 3:
                continue
            with self._lock:
                self._values = values
                self._updated = True
            if self._on_result is not None:
                self._on_result(self.id)

    def _build_widgets(self, values: list[float]) -> list[TextWidget]:
        ping = values[0] / 1000.0
        texts = {
            "ping": _format_seconds(ping),
            "speed_down": _format_bits(values[1] * 1_000_000.0),
            "speed_up": _format_bits(values[2] * 1_000_000.0),
        }
        widgets = []
        for part in self.format.parts:
            if not part.is_placeholder:
                widgets.append(TextWidget(instance=self.id, text=part.text, spacing=Spacing.INLINE))
                continue
            if part.text not in texts:
                raise BlockError("speedtest", f"unknown placeholder '{{{part.text}}}'")
            widget = TextWidget(instance=self.id, text=texts[part.text], icon=_ICONS[part.text])
            if part.text == "ping":
                widget.state = ping_state(ping)
            widgets.append(widget)
        return widgets

    def update(self) -> float | None:
        with self._lock:
            updated, values = self._updated, list(self._values)
            self._updated = False
        if updated:
            if len(values) == 3:
                self.widgets = self._build_widgets(values)
            return None
        self._requests.put(None)
        return self.config.interval

    def click(self, event: ClickEvent) -> None:
        if event.button is MouseButton.LEFT:
            self._requests.put(None)

    def view(self) -> list[TextWidget]:
        return list(self.widgets)