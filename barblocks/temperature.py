"""Block showing temperatures reported by lm-sensors."""

from __future__ import annotations

import enum
import json
import math
import re
import shutil
import subprocess
import sys
from dataclasses import dataclass
from typing import Any, Callable

from .base import BlockError, ClickEvent, FormatTemplate, MouseButton, Spacing, State, TextWidget

_INTEGER = re.compile(r"[+-]?[0-9]+")


class TemperatureScale(enum.Enum):
    """Scale used for display and thresholds."""

    CELSIUS = "celsius"
    FAHRENHEIT = "fahrenheit"


_DEFAULT_LIMITS = {
    TemperatureScale.CELSIUS: {"good": 20, "idle": 45, "info": 60, "warning": 80},
    TemperatureScale.FAHRENHEIT: {"good": 68, "idle": 113, "info": 140, "warning": 176},
}


@dataclass
class TemperatureConfig:
    """Settings of the temperature block."""

    interval: float = 5.0
    collapsed: bool = True
    scale: TemperatureScale = TemperatureScale.CELSIUS
    good: int | None = None
    idle: int | None = None
    info: int | None = None
    warning: int | None = None
    format: str = "{average} avg, {max} max"
    chip: str | None = None
    inputs: list[str] | None = None


def _warn_out_of_range(value: float) -> None:
    print(f"Temperature ({value}) outside of range ([-100, 150])", file=sys.stderr)


def parse_sensors_text(output: str) -> list[int]:
    """Collect input temperatures from ``sensors -u`` output."""
    temperatures = []
    for line in output.splitlines():
        if not line.startswith("  temp"):
            continue
        rest = line[len("  temp"):]
        words = [
            piece
            for part in rest.split("_")
            for word in part.split(" ")
            for piece in word.split(".")
        ]
        if len(words) < 2 or not words[1].startswith("input"):
            continue
        if len(words) < 3 or not _INTEGER.fullmatch(words[2]):
            raise BlockError("temperature", "failed to parse temperature as an integer")
        value = int(words[2])
        if value == 0:
            continue
        if -101 < value < 151:
            temperatures.append(value)
        else:
            _warn_out_of_range(value)
    return temperatures


def _readings(values: Any) -> dict[str, float] | None:
    if not isinstance(values, dict):
        return None
    if not all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in values.values()):
        return None
    return {name: float(v) for name, v in values.items()}


def parse_sensors_json(output: str, inputs: list[str] | None = None) -> list[int]:
    """Collect input temperatures from ``sensors -j`` output, optionally only from listed inputs."""
    try:
        parsed = json.loads(output)
    except json.JSONDecodeError as exc:
        raise BlockError("temperature", "sensors output is invalid") from exc
    if not isinstance(parsed, dict) or not all(isinstance(v, dict) for v in parsed.values()):
        raise BlockError("temperature", "sensors output is invalid")

    temperatures = []
    for chip_inputs in parsed.values():
        for input_name, input_values in chip_inputs.items():
            if inputs is not None and input_name not in inputs:
                continue
            readings = _readings(input_values)
            if readings is None:
                continue
            for value_name, value in readings.items():
                if not (value_name.startswith("temp") and value_name.endswith("input")):
                    continue
                if -101.0 < value < 151.0:
                    temperatures.append(int(value))
                else:
                    _warn_out_of_range(value)
    return temperatures


def _run_sensors(args: list[str]) -> str:
    try:
        result = subprocess.run(["sensors", *args], capture_output=True, check=False)
    except OSError as exc:
        return str(exc)
    return result.stdout.decode("utf-8", errors="replace").strip()


def _round_half_away(value: float) -> int:
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def _degrees(value: int) -> str:
    return f"{value}°"


class Temperature:
    """Shows average, minimum and maximum sensor temperatures."""

    def __init__(
        self,
        config: TemperatureConfig | None = None,
        *,
        block_id: int = 0,
        runner: Callable[[list[str]], str] = _run_sensors,
        fallback_required: bool | None = None,
    ) -> None:
        self.config = config or TemperatureConfig()
        self.id = block_id
        self._runner = runner
        self.collapsed = self.config.collapsed
        self.text = TextWidget(
            instance=0,
            icon="thermometer",
            spacing=Spacing.HIDDEN if self.collapsed else Spacing.NORMAL,
        )
        self.output = ""
        limits = _DEFAULT_LIMITS[self.config.scale]
        self.maximum_good = self.config.good if self.config.good is not None else limits["good"]
        self.maximum_idle = self.config.idle if self.config.idle is not None else limits["idle"]
        self.maximum_info = self.config.info if self.config.info is not None else limits["info"]
        self.maximum_warning = (
            self.config.warning if self.config.warning is not None else limits["warning"]
        )
        try:
            self.format = FormatTemplate(self.config.format)
        except BlockError as exc:
            raise BlockError("temperature", "Invalid format specified for temperature") from exc
        if fallback_required is None:
            fallback_required = shutil.which("sensors") is None
        self.fallback_required = fallback_required

    def _args(self) -> list[str]:
        args = ["-u" if self.fallback_required else "-j"]
        if self.config.scale is TemperatureScale.FAHRENHEIT:
            args.append("-f")
        if self.config.chip is not None:
            args.append(self.config.chip)
        return args

    def _state(self, maximum: int) -> State:
        if maximum <= self.maximum_good:
            return State.GOOD
        if maximum <= self.maximum_idle:
            return State.IDLE
        if maximum <= self.maximum_info:
            return State.INFO
        if maximum <= self.maximum_warning:
            return State.WARNING
        return State.CRITICAL

    def update(self) -> float | None:
        output = self._runner(self._args())
        if self.fallback_required:
            temperatures = parse_sensors_text(output)
        else:
            temperatures = parse_sensors_json(output, self.config.inputs)

        if temperatures:
            highest = max(temperatures)
            lowest = min(temperatures)
            average = _round_half_away(sum(temperatures) / len(temperatures))
            values = {
                "average": _degrees(average),
                "min": _degrees(lowest),
                "max": _degrees(highest),
            }
            self.output = self.format.render(values)
            if not self.collapsed:
                self.text.text = self.output
            self.text.state = self._state(highest)
        return self.config.interval

    def view(self) -> list[TextWidget]:
        return [self.text]

    def click(self, event: ClickEvent) -> None:
        if event.button is not MouseButton.LEFT:
            return
        self.collapsed = not self.collapsed
        if self.collapsed:
            self.text.text = ""
            self.text.spacing = Spacing.HIDDEN
        else:
            self.text.text = self.output
            self.text.spacing = Spacing.NORMAL