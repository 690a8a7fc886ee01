"""Shared building blocks: widget state, click events, format templates and the template block."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from typing import Any, Iterator, Mapping


class State(enum.Enum):
    """Visual state of a widget."""

    IDLE = "idle"
    INFO = "info"
    GOOD = "good"
    WARNING = "warning"
    CRITICAL = "critical"


class Spacing(enum.Enum):
    """Padding around a widget's content."""

    NORMAL = "normal"
    INLINE = "inline"
    HIDDEN = "hidden"


class MouseButton(enum.Enum):
    """Mouse buttons reported by the bar."""

    UNKNOWN = 0
    LEFT = 1
    MIDDLE = 2
    RIGHT = 3
    WHEEL_UP = 4
    WHEEL_DOWN = 5
    BACK = 8
    FORWARD = 9


class LogicalDirection(enum.Enum):
    """Direction a scroll event means, independent of the wheel's physical direction."""

    UP = "up"
    DOWN = "down"


class Scrolling(enum.Enum):
    """How wheel movement maps to a logical direction."""

    REVERSE = "reverse"
    NATURAL = "natural"

    def to_logical_direction(self, button: MouseButton) -> LogicalDirection | None:
        """Return the logical direction of a wheel button, or None for other buttons."""
        if button is MouseButton.WHEEL_UP:
            return LogicalDirection.DOWN if self is Scrolling.REVERSE else LogicalDirection.UP
        if button is MouseButton.WHEEL_DOWN:
            return LogicalDirection.UP if self is Scrolling.REVERSE else LogicalDirection.DOWN
        return None


@dataclass(frozen=True)
class ClickEvent:
    """A click on a block, optionally aimed at one of its widgets."""

    button: MouseButton
    instance: int | None = None
    name: str | None = None


class BlockError(Exception):
    """An error raised by a block."""

    def __init__(self, block: str, message: str) -> None:
        super().__init__(f"Error in block '{block}': {message}")
        self.block = block
        self.message = message


@dataclass
class TextWidget:
    """A piece of text shown on the bar."""

    instance: int = 0
    text: str = ""
    icon: str | None = None
    state: State = State.IDLE
    spacing: Spacing = Spacing.NORMAL


@dataclass(frozen=True)
class Segment:
    """One part of a format template: literal text or a placeholder name."""

    text: str
    is_placeholder: bool = False


_PLACEHOLDER = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")


def _parse_template(template: str) -> Iterator[Segment]:
    position = 0
    while position < len(template):
        char = template[position]
        if char == "{":
            match = _PLACEHOLDER.match(template, position)
            if match is None:
                raise BlockError("format", f"invalid placeholder at position {position} in '{template}'")
            yield Segment(match.group(1), is_placeholder=True)
            position = match.end()
            continue
        if char == "}":
            raise BlockError("format", f"unmatched '}}' at position {position} in '{template}'")
        end = position
        while end < len(template) and template[end] not in "{}":
            end += 1
        yield Segment(template[position:end])
        position = end


class FormatTemplate:
    """A format string with ``{name}`` placeholders."""

    def __init__(self, template: str) -> None:
        self.template = template
        self.parts: list[Segment] = list(_parse_template(template))

    @property
    def placeholders(self) -> list[str]:
        return [part.text for part in self.parts if part.is_placeholder]

    def render(self, values: Mapping[str, Any]) -> str:
        """Fill in the placeholders; a placeholder without a value is an error."""
        pieces = []
        for part in self.parts:
            if not part.is_placeholder:
                pieces.append(part.text)
                continue
            if part.text not in values:
                raise BlockError("format", f"unknown placeholder '{{{part.text}}}'")
            pieces.append(str(values[part.text]))
        return "".join(pieces)

    def __repr__(self) -> str:
        return f"FormatTemplate({self.template!r})"


@dataclass
class TemplateConfig:
    """Settings of the template block."""

    interval: float = 5.0


class Template:
    """A minimal block showing fixed text; a starting point for new blocks."""

    def __init__(self, config: TemplateConfig | None = None, *, block_id: int = 0) -> None:
        self.config = config or TemplateConfig()
        self.id = block_id
        self.text = TextWidget(instance=0, text="Template")

    def update(self) -> float | None:
        return self.config.interval

    def view(self) -> list[TextWidget]:
        return [self.text]

    def click(self, event: ClickEvent) -> None:
        return None


__all__ = [
    "State",
    "Spacing",
    "MouseButton",
    "LogicalDirection",
    "Scrolling",
    "ClickEvent",
    "BlockError",
    "TextWidget",
    "Segment",
    "FormatTemplate",
    "TemplateConfig",
    "Template",
]