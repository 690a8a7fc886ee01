import pytest

from barblocks.base import BlockError, ClickEvent, MouseButton, State
from barblocks.toggle import Toggle, ToggleConfig


def file_toggle(tmp_path, **kwargs):
    state = tmp_path / "state"
    state.write_text("")
    config = ToggleConfig(
        command_on=f"echo on > '{state}'",
        command_off=f": > '{state}'",
        command_state=f"cat '{state}'",
        **kwargs,
    )
    return Toggle(config, shell="sh"), state


def test_update_reads_off_state(tmp_path):
    block, _ = file_toggle(tmp_path)
    assert block.update() is None
    assert block.toggled is False
    assert block.text.icon == "toggle_off"
    assert block.text.state is State.IDLE


def test_update_reads_on_state(tmp_path):
    block, state = file_toggle(tmp_path, interval=7.0)
    state.write_text("yes\n")
    assert block.update() == 7.0
    assert block.toggled is True
    assert block.text.icon == "toggle_on"


def test_click_round_trip(tmp_path):
    block, state = file_toggle(tmp_path)
    block.update()
    block.click(ClickEvent(MouseButton.LEFT))
    assert block.toggled is True
    assert block.text.icon == "toggle_on"
    assert state.read_text().strip() == "on"
    block.update()
    assert block.toggled is True
    block.click(ClickEvent(MouseButton.LEFT))
    assert block.toggled is False
    assert state.read_text() == ""
    block.update()
    assert block.text.icon == "toggle_off"


def test_failed_command_sets_critical():
    config = ToggleConfig(command_on="exit 1", command_off="true", command_state="true")
    block = Toggle(config, shell="sh")
    block.update()
    block.click(ClickEvent(MouseButton.LEFT))
    assert block.text.state is State.CRITICAL
    assert block.toggled is False


def test_custom_icons_and_text():
    config = ToggleConfig(
        command_on="true",
        command_off="true",
        command_state="echo x",
        icon_on="up",
        icon_off="down",
        text="wifi",
    )
    block = Toggle(config, shell="sh")
    assert block.view()[0].text == "wifi"
    block.update()
    assert block.text.icon == "up"
    block.click(ClickEvent(MouseButton.RIGHT))
    assert block.text.icon == "down"


def test_missing_shell_click_raises(tmp_path):
    config = ToggleConfig(command_on="true", command_off="true", command_state="true")
    block = Toggle(config, shell=str(tmp_path / "no-such-shell"))
    with pytest.raises(BlockError, match="failed to run toggle command"):
        block.click(ClickEvent(MouseButton.LEFT))


def test_missing_shell_update_treats_error_as_on(tmp_path):
    config = ToggleConfig(command_on="true", command_off="true", command_state="true")
    block = Toggle(config, shell=str(tmp_path / "no-such-shell"))
    block.update()
    assert block.toggled is True