import threading

import pytest

from barblocks.base import BlockError, ClickEvent, MouseButton, State
from barblocks.speedtest import SpeedTest, SpeedTestConfig, parse_values, ping_state

SAMPLE = "Ping: 20.5 ms\nDownload: 93.4 Mbit/s\nUpload: 10.2 Mbit/s\n"


def test_parse_values():
    assert parse_values(SAMPLE) == [20.5, 93.4, 10.2]


def test_parse_empty_output():
    assert parse_values("") == []


def test_parse_missing_data():
    with pytest.raises(BlockError):
        parse_values("Ping:\n")


def test_parse_bad_number():
    with pytest.raises(BlockError):
        parse_values("Ping: fast ms\n")


@pytest.mark.parametrize(
    "ping, state",
    [(0.0, State.GOOD), (0.040, State.INFO), (0.080, State.WARNING), (0.5, State.CRITICAL)],
)
def test_ping_state(ping, state):
    assert ping_state(ping) is state


def _block(runner, fmt=None):
    done = threading.Event()
    config = SpeedTestConfig() if fmt is None else SpeedTestConfig(format=fmt)
    block = SpeedTest(config, runner=runner, on_result=lambda _id: done.set())
    return block, done


def test_update_runs_test_and_builds_widgets():
    block, done = _block(lambda: SAMPLE)
    assert block.update() == 1800.0
    assert done.wait(5)
    assert block.update() is None
    widgets = block.view()
    assert [w.icon for w in widgets] == ["ping", "net_down", "net_up"]
    assert widgets[0].state is State.GOOD


def test_literal_text_kept():
    block, done = _block(lambda: SAMPLE, fmt="{ping} | {speed_up}")
    block.update()
    assert done.wait(5)
    block.update()
    assert [w.text for w in block.view()][1] == " | "


def test_click_triggers_measurement():
    block, done = _block(lambda: SAMPLE)
    block.click(ClickEvent(MouseButton.LEFT))
    assert done.wait(5)
    assert block.update() is None
    assert len(block.view()) == 3


def test_incomplete_output_ignored():
    calls = threading.Event()

    def runner():
        calls.set()
        return "Ping: 20.5 ms\n"

    block, done = _block(runner)
    block.update()
    assert calls.wait(5)
    assert not done.wait(0.2)
    assert block.update() == 1800.0
    assert block.view() == []