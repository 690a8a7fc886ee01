"""Sound device kinds and the ALSA mixer device driven through amixer."""

from __future__ import annotations

import enum
import re
import subprocess
import threading
import time
from typing import Callable

from .base import BlockError

_UNSIGNED = re.compile(r"\+?[0-9]+")
_U32_MAX = 2**32 - 1
_BRACKET_CHARS = "[]%"
_MONITOR_PAUSE = 0.25

Runner = Callable[[list[str]], bytes]


class DeviceKind(enum.Enum):
    """Whether a device plays sound or records it."""

    SINK = "sink"
    SOURCE = "source"

    @classmethod
    def default(cls) -> DeviceKind:
        return cls.SINK


class SoundDriver(enum.Enum):
    """Which sound system to talk to."""

    AUTO = "auto"
    ALSA = "alsa"

    @classmethod
    def default(cls) -> SoundDriver:
        return cls.AUTO


def parse_amixer_output(output: str) -> tuple[int, bool]:
    """Read volume percentage and mute flag from the last line of ``amixer get`` output."""
    lines = output.strip().splitlines()
    if not lines:
        raise BlockError("sound", "could not get sound info")
    fields = [
        word.strip(_BRACKET_CHARS)
        for word in lines[-1].split()
        if word.startswith("[") and "dB" not in word
    ]
    if not fields:
        raise BlockError("sound", "could not get volume")
    volume_text = fields[0]
    if not _UNSIGNED.fullmatch(volume_text) or int(volume_text) > _U32_MAX:
        raise BlockError("sound", "could not parse volume to u32")
    muted = len(fields) > 1 and fields[1] == "off"
    return int(volume_text), muted


def _run_amixer(args: list[str]) -> bytes:
    return subprocess.run(args, capture_output=True, check=False).stdout


class AlsaSoundDevice:
    """An ALSA simple mixer control, read and changed with amixer."""

    def __init__(
        self,
        name: str = "Master",
        device: str = "default",
        natural_mapping: bool = False,
        *,
        runner: Runner = _run_amixer,
    ) -> None:
        self.name = name
        self.device = device
        self.natural_mapping = natural_mapping
        self._runner = runner
        self.volume = 0
        self.muted = False
        self.get_info()

    @property
    def output_name(self) -> str:
        return self.name

    @property
    def output_description(self) -> str | None:
        return None

    def _command(self, *action: str) -> list[str]:
        args = ["amixer"]
        if self.natural_mapping:
            args.append("-M")
        args.extend(["-D", self.device, *action])
        return args

    def _run(self, args: list[str], error: str) -> bytes:
        try:
            return self._runner(args)
        except OSError as exc:
            raise BlockError("sound", error) from exc

    def get_info(self) -> None:
        """Refresh volume and mute state from the mixer."""
        stdout = self._run(
            self._command("get", self.name), "could not run amixer to get sound info"
        )
        text = stdout.decode("utf-8", errors="replace")
        self.volume, self.muted = parse_amixer_output(text)

    def set_volume(self, step: int, max_vol: int | None) -> None:
        """Change the volume by ``step`` percent, not below 0 and not above ``max_vol``."""
        new_volume = max(0, self.volume + step)
        if max_vol is not None:
            new_volume = min(new_volume, max_vol)
        self._run(self._command("set", self.name, f"{new_volume}%"), "failed to set volume")
        self.volume = new_volume

    def toggle(self) -> None:
        """Mute or unmute the control."""
        self._run(self._command("set", self.name, "toggle"), "failed to toggle mute")
        self.muted = not self.muted

    def monitor(self, on_event: Callable[[], None]) -> threading.Thread:
        """Call ``on_event`` whenever ``alsactl monitor`` reports something, at most every 1/4 s."""
        try:
            process = subprocess.Popen(
                ["stdbuf", "-oL", "alsactl", "monitor"], stdout=subprocess.PIPE
            )
        except OSError as exc:
            raise BlockError("sound", "Failed to start alsactl monitor") from exc
        stream = process.stdout
        if stream is None:
            raise BlockError("sound", "Failed to pipe alsactl monitor output")

        def watch() -> None:
            while True:
                try:
                    stream.read1(1024)
                except OSError:
                    pass
                else:
                    on_event()
                time.sleep(_MONITOR_PAUSE)

        thread = threading.Thread(target=watch, name="sound_alsa", daemon=True)
        thread.start()
        return thread