import pytest

from barblocks.base import BlockError
from barblocks.sound_devices import (
    AlsaSoundDevice,
    DeviceKind,
    SoundDriver,
    parse_amixer_output,
)

UNMUTED = (
    "Simple mixer control 'Master',0\n"
    "  Capabilities: pvolume pswitch\n"
    "  Mono: Playback 42 [65%] [-10.50dB] [on]\n"
)
MUTED = (
    "Simple mixer control 'Master',0\n"
    "  Front Left: Playback 10 [30%] [-20.00dB] [on]\n"
    "  Front Right: Playback 10 [30%] [-20.00dB] [off]\n"
)


class FakeAmixer:
    def __init__(self, output=UNMUTED, error=None):
        self.output = output
        self.error = error
        self.calls = []

    def __call__(self, args):
        self.calls.append(list(args))
        if self.error is not None:
            raise self.error
        return self.output.encode()


def test_parse_unmuted():
    assert parse_amixer_output(UNMUTED) == (65, False)


def test_parse_uses_last_line():
    assert parse_amixer_output(MUTED) == (30, True)


def test_parse_volume_without_switch_is_not_muted():
    assert parse_amixer_output("  Mono: Playback 5 [7%]") == (7, False)


def test_parse_empty_output():
    with pytest.raises(BlockError, match="could not get sound info"):
        parse_amixer_output("")


def test_parse_no_bracketed_fields():
    with pytest.raises(BlockError, match="could not get volume"):
        parse_amixer_output("Mono: Playback 42 [-10.50dB]")


def test_parse_bad_volume():
    with pytest.raises(BlockError, match="could not parse volume"):
        parse_amixer_output("Mono: Playback [abc%] [on]")


def test_device_reads_info_on_creation():
    runner = FakeAmixer(MUTED)
    device = AlsaSoundDevice("Master", "default", False, runner=runner)
    assert runner.calls == [["amixer", "-D", "default", "get", "Master"]]
    assert (device.volume, device.muted) == (30, True)
    assert device.output_name == "Master"
    assert device.output_description is None


def test_natural_mapping_adds_flag():
    runner = FakeAmixer()
    AlsaSoundDevice("PCM", "hw:1", True, runner=runner)
    assert runner.calls[0] == ["amixer", "-M", "-D", "hw:1", "get", "PCM"]


def test_set_volume_up_and_args():
    runner = FakeAmixer()
    device = AlsaSoundDevice(runner=runner)
    device.set_volume(5, None)
    assert device.volume == 70
    assert runner.calls[-1] == ["amixer", "-D", "default", "set", "Master", "70%"]


def test_set_volume_not_below_zero():
    runner = FakeAmixer()
    device = AlsaSoundDevice(runner=runner)
    device.set_volume(-1000, None)
    assert device.volume == 0
    assert runner.calls[-1][-1] == "0%"


def test_set_volume_capped():
    runner = FakeAmixer()
    device = AlsaSoundDevice(runner=runner)
    device.set_volume(50, 80)
    assert device.volume == 80


def test_toggle_flips_mute():
    runner = FakeAmixer()
    device = AlsaSoundDevice(runner=runner)
    device.toggle()
    assert device.muted is True
    assert runner.calls[-1] == ["amixer", "-D", "default", "set", "Master", "toggle"]
    device.toggle()
    assert device.muted is False


def test_missing_amixer_raises():
    with pytest.raises(BlockError, match="could not run amixer"):
        AlsaSoundDevice(runner=FakeAmixer(error=FileNotFoundError("amixer")))


def test_set_volume_failure_keeps_volume():
    runner = FakeAmixer()
    device = AlsaSoundDevice(runner=runner)
    runner.error = OSError("boom")
    with pytest.raises(BlockError, match="failed to set volume"):
        device.set_volume(5, None)
    assert device.volume == 65


def test_enum_defaults_and_values():
    assert DeviceKind.default() is DeviceKind.SINK
    assert DeviceKind("source") is DeviceKind.SOURCE
    assert SoundDriver.default() is SoundDriver.AUTO
    assert SoundDriver("alsa") is SoundDriver.ALSA