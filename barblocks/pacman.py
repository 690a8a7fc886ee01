"""Block counting pending pacman and AUR package updates."""

from __future__ import annotations

import enum
import os
import re
import shutil
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path

from .base import BlockError, ClickEvent, FormatTemplate, MouseButton, State, TextWidget


class WatchKind(enum.Enum):
    """Which package sources the block has to query."""

    NONE = "none"
    PACMAN = "pacman"
    AUR = "aur"
    BOTH = "both"


@dataclass(frozen=True)
class Watched:
    """The sources to query, with the AUR command when the AUR is among them."""

    kind: WatchKind
    aur_command: str | None = None


def watched(
    format: str,
    format_singular: str,
    format_up_to_date: str,
    aur_command: str | None,
) -> Watched:
    """Work out from the format strings which sources have to be queried."""
    combined = f"{format}{format_singular}{format_up_to_date}"
    aur = "{aur" in combined
    pacman = "{pacman" in combined or "{count" in combined
    both = "{both" in combined

    if both or (pacman and aur):
        if aur_command is None:
            raise BlockError(
                "pacman",
                "{aur} or {both} found in format string but no aur_command supplied",
            )
        return Watched(WatchKind.BOTH, aur_command)
    if pacman:
        return Watched(WatchKind.PACMAN)
    if aur:
        if aur_command is None:
            raise BlockError("pacman", "{aur} found in format string but no aur_command supplied")
        return Watched(WatchKind.AUR, aur_command)
    return Watched(WatchKind.NONE)


def get_update_count(updates: str) -> int:
    """Count the listed updates, leaving out ignored packages."""
    return sum(1 for line in updates.splitlines() if "[ignored]" not in line)


def has_matching_update(updates: str, regex: re.Pattern[str]) -> bool:
    """Whether any listed update matches the pattern."""
    return any(regex.search(line) for line in updates.splitlines())


def _run_output(args: list[str], error: str, env: dict[str, str] | None = None) -> bytes:
    try:
        return subprocess.run(args, capture_output=True, check=False, env=env).stdout
    except OSError as exc:
        raise BlockError("pacman", error) from exc


def get_aur_available_updates(aur_command: str) -> str:
    """Run the AUR command through the shell and return what it prints."""
    stdout = _run_output(["sh", "-c", aur_command], f"aur command: {aur_command} failed")
    try:
        return stdout.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise BlockError(
            "pacman", "There was a problem while converting the aur command output to a string"
        ) from exc


def get_updates_db_dir() -> str:
    """Directory holding the private copy of the sync database."""
    override = os.environ.get("CHECKUPDATES_DB")
    if override is not None:
        return override
    user = os.environ.get("USER", "")
    return f"{tempfile.gettempdir()}/checkup-db-{user}"


def _check_fakeroot() -> None:
    if shutil.which("fakeroot") is None:
        raise BlockError("pacman", "fakeroot not found")


def _run_command(command: str) -> None:
    try:
        process = subprocess.Popen(["sh", "-c", command])
    except OSError as exc:
        raise BlockError("pacman", f"Failed to run command '{command}'") from exc
    try:
        process.wait()
    except OSError as exc:
        raise BlockError("pacman", f"Failed to wait for command '{command}'") from exc


def get_pacman_available_updates() -> str:
    """Refresh a private sync database and list upgradable packages."""
    updates_db = get_updates_db_dir()
    db_path = Path(os.environ.get("DBPath", "/var/lib/pacman/"))

    try:
        Path(updates_db).mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise BlockError("pacman", f"Failed to create checkup-db path '{updates_db}'") from exc

    local_cache = Path(updates_db) / "local"
    if not local_cache.exists():
        try:
            local_cache.symlink_to(db_path / "local")
        except OSError as exc:
            raise BlockError("pacman", "Failed to created required symlink") from exc

    _run_command(
        f'fakeroot -- pacman -Sy --dbpath "{updates_db}" --logfile /dev/null &> /dev/null'
    )

    env = dict(os.environ, LC_ALL="C")
    stdout = _run_output(
        ["sh", "-c", f'fakeroot pacman -Qu --dbpath "{updates_db}"'],
        "There was a problem running the pacman commands",
        env=env,
    )
    try:
        return stdout.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise BlockError(
            "pacman",
            "There was a problem while converting the output of the pacman command to a string",
        ) from exc


def _compile(pattern: str | None, which: str) -> re.Pattern[str] | None:
    if pattern is None:
        return None
    try:
        return re.compile(pattern)
    except re.error as exc:
        raise BlockError("pacman", f"invalid {which} updates regex") from exc


def _template(text: str, option: str) -> FormatTemplate:
    try:
        return FormatTemplate(text)
    except BlockError as exc:
        raise BlockError("pacman", f"Invalid format specified for pacman::{option}") from exc


@dataclass
class PacmanConfig:
    """Settings of the pacman block."""

    interval: float = 600.0
    format: str = "{pacman}"
    format_singular: str = "{pacman}"
    format_up_to_date: str = "{pacman}"
    warning_updates_regex: str | None = None
    critical_updates_regex: str | None = None
    aur_command: str | None = None
    hide_when_uptodate: bool = False


class Pacman:
    """Shows how many package updates are pending."""

    def __init__(self, config: PacmanConfig | None = None, *, block_id: int = 0) -> None:
        self.config = config or PacmanConfig()
        self.id = block_id
        self.output = TextWidget(instance=0, icon="update")
        self.format = _template(self.config.format, "format")
        self.format_singular = _template(self.config.format_singular, "format_singular")
        self.format_up_to_date = _template(self.config.format_up_to_date, "format_up_to_date")
        self.warning_updates_regex = _compile(self.config.warning_updates_regex, "warning")
        self.critical_updates_regex = _compile(self.config.critical_updates_regex, "critical")
        self.watched = watched(
            self.config.format,
            self.config.format_singular,
            self.config.format_up_to_date,
            self.config.aur_command,
        )
        self.uptodate = False

    def _matches(self, regex: re.Pattern[str] | None, listings: list[str]) -> bool:
        return regex is not None and any(has_matching_update(text, regex) for text in listings)

    def update(self) -> float | None:
        kind = self.watched.kind
        values: dict[str, int] = {}
        listings: list[str] = []
        total = 0

        if kind in (WatchKind.PACMAN, WatchKind.BOTH):
            _check_fakeroot()
            pacman_updates = get_pacman_available_updates()
            pacman_count = get_update_count(pacman_updates)
            values["count"] = pacman_count
            values["pacman"] = pacman_count
            listings.append(pacman_updates)
            total += pacman_count
        if kind in (WatchKind.AUR, WatchKind.BOTH):
            aur_updates = get_aur_available_updates(self.watched.aur_command or "")
            aur_count = get_update_count(aur_updates)
            values["aur"] = aur_count
            listings.append(aur_updates)
            total += aur_count
        if kind is WatchKind.BOTH:
            values["both"] = total

        warning = self._matches(self.warning_updates_regex, listings)
        critical = self._matches(self.critical_updates_regex, listings)

        if total == 0:
            template = self.format_up_to_date
        elif total == 1:
            template = self.format_singular
        else:
            template = self.format
        self.output.text = template.render(values)

        if total == 0:
            self.output.state = State.IDLE
        elif critical:
            self.output.state = State.CRITICAL
        elif warning:
            self.output.state = State.WARNING
        else:
            self.output.state = State.INFO

        self.uptodate = total == 0
        return self.config.interval

    def view(self) -> list[TextWidget]:
        if self.uptodate and self.config.hide_when_uptodate:
            return []
        return [self.output]

    def click(self, event: ClickEvent) -> None:
        if event.button is MouseButton.LEFT:
            self.update()