"""Block counting pending taskwarrior tasks."""

from __future__ import annotations

import re
import subprocess
from dataclasses import dataclass, field
from typing import Callable

from .base import BlockError, ClickEvent, FormatTemplate, MouseButton, State, TextWidget

_UNSIGNED = re.compile(r"\+?[0-9]+")
_U32_MAX = 2**32 - 1


@dataclass
class Filter:
    """A named taskwarrior filter expression."""

    name: str = ""
    filter: str = ""

    @classmethod
    def legacy(cls, name: str, tags: list[str]) -> Filter:
        """Build a filter from the older tag-list option."""
        joined = " ".join(f"+{tag}" for tag in tags)
        return cls(name, f"-COMPLETED -DELETED {joined}")


def _default_filters() -> list[Filter]:
    return [Filter("pending", "-COMPLETED -DELETED")]


@dataclass
class TaskwarriorConfig:
    """Settings of the taskwarrior block."""

    interval: float = 600.0
    warning_threshold: int = 10
    critical_threshold: int = 20
    filter_tags: list[str] = field(default_factory=list)
    filters: list[Filter] = field(default_factory=_default_filters)
    format: str = "{count}"
    format_singular: str = "{count}"
    format_everything_done: str = "{count}"


def _shell_output(command: str, error: str) -> str:
    try:
        stdout = subprocess.run(["sh", "-c", command], capture_output=True, check=False).stdout
    except OSError as exc:
        raise BlockError("taskwarrior", error) from exc
    try:
        return stdout.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise BlockError("taskwarrior", "failed to decode the output of taskwarrior") from exc


def has_taskwarrior() -> bool:
    """Whether the ``task`` command can be found."""
    output = _shell_output("type -P task", "failed to start command to check for taskwarrior")
    return output.strip() != ""


def get_number_of_tasks(filter: str) -> int:
    """Ask taskwarrior how many tasks match the filter."""
    output = _shell_output(
        f"task rc.gc=off {filter} count",
        "failed to run taskwarrior for getting the number of tasks",
    ).strip()
    if not _UNSIGNED.fullmatch(output) or int(output) > _U32_MAX:
        raise BlockError("taskwarrior", "could not parse the result of taskwarrior")
    return int(output)


def _template(text: str, option: str) -> FormatTemplate:
    try:
        return FormatTemplate(text)
    except BlockError as exc:
        raise BlockError(
            "taskwarrior", f"Invalid format specified for taskwarrior::{option}"
        ) from exc


class Taskwarrior:
    """Shows the number of tasks matching the active filter."""

    def __init__(
        self,
        config: TaskwarriorConfig | None = None,
        *,
        block_id: int = 0,
        count_tasks: Callable[[str], int] = get_number_of_tasks,
        taskwarrior_available: Callable[[], bool] = has_taskwarrior,
    ) -> None:
        self.config = config or TaskwarriorConfig()
        self.id = block_id
        self._count_tasks = count_tasks
        self._available = taskwarrior_available
        self.output = TextWidget(instance=0, text="-", icon="tasks")
        if self.config.filter_tags:
            self.filters = [
                Filter.legacy("filtered", self.config.filter_tags),
                Filter.legacy("all", []),
            ]
        else:
            self.filters = list(self.config.filters)
        self.filter_index = 0
        self.format = _template(self.config.format, "format")
        self.format_singular = _template(self.config.format_singular, "format_singular")
        self.format_everything_done = _template(
            self.config.format_everything_done, "format_everything_done"
        )

    def update(self) -> float | None:
        if not self._available():
            self.output.text = "?"
            return self.config.interval

        if self.filter_index >= len(self.filters):
            raise BlockError(
                "taskwarrior", f"Filter at index {self.filter_index} does not exist"
            )
        active = self.filters[self.filter_index]
        count = self._count_tasks(active.filter)
        values = {"count": count, "filter_name": active.name}

        if count == 0:
            template = self.format_everything_done
        elif count == 1:
            template = self.format_singular
        else:
            template = self.format
        self.output.text = template.render(values)

        if count >= self.config.critical_threshold:
            self.output.state = State.CRITICAL
        elif count >= self.config.warning_threshold:
            self.output.state = State.WARNING
        else:
            self.output.state = State.IDLE
        return self.config.interval

    def view(self) -> list[TextWidget]:
        return [self.output]

    def click(self, event: ClickEvent) -> None:
        if event.button is MouseButton.LEFT:
            self.update()
        elif event.button is MouseButton.RIGHT:
            if not self.filters:
                raise BlockError("taskwarrior", "no filters configured")
            self.filter_index = (self.filter_index + 1) % len(self.filters)
            self.update()