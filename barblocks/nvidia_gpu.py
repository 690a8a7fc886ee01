"""Block showing NVIDIA GPU statistics from nvidia-smi, with optional fan control."""

from __future__ import annotations

import enum
import itertools
import re
import subprocess
from dataclasses import dataclass
from typing import Callable, Iterator

from .base import (
    BlockError,
    ClickEvent,
    LogicalDirection,
    MouseButton,
    Scrolling,
    Spacing,
    State,
    TextWidget,
)

_UNSIGNED = re.compile(r"\+?[0-9]+")
_instance_ids = itertools.count(1 << 32)

Runner = Callable[[list[str]], "subprocess.CompletedProcess[bytes]"]


def _run_smi(args: list[str]) -> subprocess.CompletedProcess[bytes]:
    try:
        return subprocess.run(args, capture_output=True, check=False)
    except OSError as exc:
        raise BlockError("gpu", "Failed to execute nvidia-smi.") from exc


def _run_settings(args: list[str]) -> subprocess.CompletedProcess[bytes]:
    try:
        return subprocess.run(args, capture_output=True, check=False)
    except OSError as exc:
        raise BlockError("gpu", "Failed to execute nvidia-settings.") from exc


def _parse_unsigned(text: str) -> int:
    return int(text) if _UNSIGNED.fullmatch(text) else 0


class _NameMode(enum.Enum):
    DEFAULT_NAME = "default_name"
    LABEL = "label"


class _MemoryMode(enum.Enum):
    USED = "used"
    TOTAL = "total"


@dataclass
class NvidiaGpuConfig:
    """Settings of the NVIDIA GPU block; temperature limits are in degrees Celsius."""

    interval: float = 3.0
    label: str | None = None
    gpu_id: int = 0
    show_utilization: bool = True
    show_memory: bool = True
    show_temperature: bool = True
    show_fan_speed: bool = False
    show_clocks: bool = False
    show_power_draw: bool = False
    idle: int = 50
    good: int = 70
    info: int = 75
    warning: int = 80


class NvidiaGpu:
    """Shows name, utilization, memory, temperature, fan, clocks and power of one GPU."""

    def __init__(
        self,
        config: NvidiaGpuConfig | None = None,
        *,
        block_id: int = 0,
        scrolling: Scrolling = Scrolling.REVERSE,
        smi_runner: Runner = _run_smi,
        settings_runner: Runner = _run_settings,
    ) -> None:
        self.config = config or NvidiaGpuConfig()
        self.id = block_id
        self.id_memory = next(_instance_ids)
        self.id_fans = next(_instance_ids)
        self.scrolling = scrolling
        self._smi = smi_runner
        self._settings = settings_runner
        self.gpu_enabled = False

        self.name_widget = TextWidget(instance=self.id, icon="gpu", spacing=Spacing.INLINE)
        self.name_mode = _NameMode.LABEL if self.config.label is not None else _NameMode.DEFAULT_NAME
        self.label = self.config.label or ""

        def widget(enabled: bool, instance: int) -> TextWidget | None:
            return TextWidget(instance=instance, spacing=Spacing.INLINE) if enabled else None

        self.utilization = widget(self.config.show_utilization, self.id)
        self.memory = widget(self.config.show_memory, self.id_memory)
        self.memory_mode = _MemoryMode.USED
        self.temperature = widget(self.config.show_temperature, self.id)
        self.fan = widget(self.config.show_fan_speed, self.id_fans)
        self.fan_speed = 0
        self.fan_speed_controlled = False
        self.clocks = widget(self.config.show_clocks, self.id)
        self.power_draw = widget(self.config.show_power_draw, self.id)

    def query_fields(self) -> str:
        """The comma-terminated field list passed to ``--query-gpu``."""
        fields = "name,memory.total,"
        for widget, name in (
            (self.utilization, "utilization.gpu"),
            (self.memory, "memory.used"),
            (self.temperature, "temperature.gpu"),
            (self.fan, "fan.speed"),
            (self.clocks, "clocks.current.graphics"),
            (self.power_draw, "power.draw"),
        ):
            if widget is not None:
                fields += f"{name},"
        return fields

    def _temperature_state(self, temp: int) -> State:
        if temp <= self.config.idle:
            return State.IDLE
        if temp <= self.config.good:
            return State.GOOD
        if temp <= self.config.info:
            return State.INFO
        if temp <= self.config.warning:
            return State.WARNING
        return State.CRITICAL

    def update(self) -> float | None:
        result = self._smi(
            [
                "nvidia-smi",
                "-i",
                str(self.config.gpu_id),
                f"--query-gpu={self.query_fields()}",
                "--format=csv,noheader,nounits",
            ]
        )
        code = result.returncode
        if code == 0:
            self.gpu_enabled = True
        elif code == 9:
            self.gpu_enabled = False
        elif code < 0:
            raise BlockError("nvidia_gpu", "nvidia-smi terminated by signal")
        else:
            raise BlockError("nvidia_gpu", f"nvidia-smi error code {code}")

        if not self.gpu_enabled:
            self.name_widget.text = "DISABLED"
            return self.config.interval

        stdout = result.stdout
        if isinstance(stdout, bytes):
            try:
                stdout = stdout.decode("utf-8")
            except UnicodeDecodeError as exc:
                raise BlockError("nvidia_gpu", "nvidia-smi output is not valid UTF-8") from exc
        fields: Iterator[str] = iter(stdout[:-1].split(", "))

        def take() -> str:
            try:
                return next(fields)
            except StopIteration:
                raise BlockError("nvidia_gpu", "nvidia-smi output has too few fields") from None

        gpu_name = take()
        memory_total = take()

        if self.name_mode is _NameMode.DEFAULT_NAME:
            self.name_widget.text = gpu_name
            self.name_widget.spacing = Spacing.INLINE
        else:
            self.name_widget.spacing = Spacing.INLINE if self.label else Spacing.HIDDEN
            self.name_widget.text = self.label

        if self.utilization is not None:
            self.utilization.text = f"{take():<2}%"
        if self.memory is not None:
            used = take()
            shown = used if self.memory_mode is _MemoryMode.USED else memory_total
            self.memory.text = f"{shown}MB"
        if self.temperature is not None:
            temp = _parse_unsigned(take())
            self.temperature.state = self._temperature_state(temp)
            self.temperature.text = f"{temp:02d}°C"
        if self.fan is not None:
            self.fan_speed = _parse_unsigned(take())
            self.fan.text = f"{self.fan_speed:02d}%"
        if self.clocks is not None:
            self.clocks.text = f"{take()}MHz"
        if self.power_draw is not None:
            self.power_draw.text = f"{take()} W"

        return self.config.interval

    def view(self) -> list[TextWidget]:
        widgets = [self.name_widget]
        if self.gpu_enabled:
            widgets.extend(
                widget
                for widget in (
                    self.utilization,
                    self.memory,
                    self.temperature,
                    self.fan,
                    self.clocks,
                    self.power_draw,
                )
                if widget is not None
            )
        return widgets

    def _click_fan(self, button: MouseButton) -> None:
        controlled_changed = False
        new_fan_speed = self.fan_speed
        if button is MouseButton.LEFT:
            self.fan_speed_controlled = not self.fan_speed_controlled
            controlled_changed = True
        else:
            direction = self.scrolling.to_logical_direction(button)
            if direction is LogicalDirection.UP:
                if self.fan_speed < 100 and self.fan_speed_controlled:
                    new_fan_speed += 1
            elif direction is LogicalDirection.DOWN:
                if self.fan_speed > 0 and self.fan_speed_controlled:
                    new_fan_speed -= 1

        if self.fan is None:
            return
        gpu = self.config.gpu_id
        if controlled_changed:
            if self.fan_speed_controlled:
                self._settings(
                    [
                        "nvidia-settings",
                        "-a",
                        f"[gpu:{gpu}]/GPUFanControlState=1",
                        "-a",
                        f"[fan:{gpu}]/GPUTargetFanSpeed={self.fan_speed}",
                    ]
                )
                self.fan.text = f"{self.fan_speed:02d}%"
                self.fan.state = State.WARNING
            else:
                self._settings(["nvidia-settings", "-a", f"[gpu:{gpu}]/GPUFanControlState=0"])
                self.fan.state = State.IDLE
        elif self.fan_speed_controlled:
            self._settings(
                ["nvidia-settings", "-a", f"[fan:{gpu}]/GPUTargetFanSpeed={new_fan_speed}"]
            )
            self.fan_speed = new_fan_speed
            self.fan.text = f"{new_fan_speed:02d}%"

    def click(self, event: ClickEvent) -> None:
        instance = event.instance
        if instance is None:
            return
        if instance == self.id and event.button is MouseButton.LEFT:
            self.name_mode = (
                _NameMode.LABEL if self.name_mode is _NameMode.DEFAULT_NAME else _NameMode.DEFAULT_NAME
            )
            self.update()
        if instance == self.id_memory and event.button is MouseButton.LEFT:
            self.memory_mode = (
                _MemoryMode.TOTAL if self.memory_mode is _MemoryMode.USED else _MemoryMode.USED
            )
            self.update()
        if instance == self.id_fans:
            self._click_fan(event.button)