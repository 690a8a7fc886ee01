"""Block switching something on and off through shell commands."""

from __future__ import annotations

import os
import subprocess
from dataclasses import dataclass

from .base import BlockError, ClickEvent, State, TextWidget


@dataclass
class ToggleConfig:
    """Settings of the toggle block; empty output of ``command_state`` means off."""

    command_on: str
    command_off: str
    command_state: str
    interval: float | None = None
    icon_on: str = "toggle_on"
    icon_off: str = "toggle_off"
    text: str | None = None


class Toggle:
    """Runs one command to switch on, another to switch off, and a third to read the state."""

    def __init__(self, config: ToggleConfig, *, block_id: int = 0, shell: str | None = None) -> None:
        self.config = config
        self.id = block_id
        self._shell = shell
        self.text = TextWidget(instance=0, text=config.text or "")
        self.toggled = False

    @property
    def shell(self) -> str:
        return self._shell or os.environ.get("SHELL", "sh")

    def update(self) -> float | None:
        try:
            result = subprocess.run(
                [self.shell, "-c", self.config.command_state], capture_output=True, check=False
            )
            output = result.stdout.decode("utf-8", errors="replace").strip()
        except OSError as exc:
            output = str(exc)

        self.toggled = output.lstrip() != ""
        self.text.icon = self.config.icon_on if self.toggled else self.config.icon_off
        self.text.state = State.IDLE
        return self.config.interval

    def click(self, event: ClickEvent) -> None:
        command = self.config.command_off if self.toggled else self.config.command_on
        try:
            result = subprocess.run([self.shell, "-c", command], capture_output=True, check=False)
        except OSError as exc:
            raise BlockError("toggle", "failed to run toggle command") from exc

        if result.returncode == 0:
            self.text.state = State.IDLE
            self.toggled = not self.toggled
            self.text.icon = self.config.icon_on if self.toggled else self.config.icon_off
        else:
            self.text.state = State.CRITICAL

    def view(self) -> list[TextWidget]:
        return [self.text]