import json

import pytest

from barblocks.base import BlockError, ClickEvent, MouseButton, Spacing, State
from barblocks.temperature import (
    Temperature,
    TemperatureConfig,
    TemperatureScale,
    parse_sensors_json,
    parse_sensors_text,
)

TEXT_OUTPUT = """coretemp-isa-0000
Adapter: ISA adapter
Package id 0:
  temp1_input: 45.000
  temp1_max: 80.000
Core 0:
  temp2_input: 43.000
  temp2_crit: 100.000
Core 1:
  temp3_input: 0.000
  temp4_input: 200.000
"""

JSON_DATA = {
    "coretemp-isa-0000": {
        "Adapter": "ISA adapter",
        "Package id 0": {"temp1_input": 45.0, "temp1_max": 80.0},
        "Core 0": {"temp2_input": 43.5, "temp2_crit": 100.0},
        "Core 1": {"temp3_input": 300.0},
    }
}


def _json_block(temps, **config):
    data = {"chip": {f"in{n}": {f"temp{n}_input": t} for n, t in enumerate(temps)}}
    calls = []

    def runner(args):
        calls.append(args)
        return json.dumps(data)

    block = Temperature(TemperatureConfig(**config), runner=runner, fallback_required=False)
    return block, calls


def test_parse_text_output():
    assert sorted(parse_sensors_text(TEXT_OUTPUT)) == [43, 45]


def test_parse_text_rejects_non_integer():
    with pytest.raises(BlockError):
        parse_sensors_text("  temp1_input: abc\n")


def test_parse_text_ignores_other_lines():
    assert parse_sensors_text("temp1_input: 40.000\n  temp1_max: 90.000\n") == []


def test_parse_json_output():
    assert sorted(parse_sensors_json(json.dumps(JSON_DATA))) == [43, 45]


def test_parse_json_whitelist():
    assert parse_sensors_json(json.dumps(JSON_DATA), ["Core 0"]) == [43]


@pytest.mark.parametrize("output", ["not json", json.dumps({"chip": 3})])
def test_parse_json_invalid(output):
    with pytest.raises(BlockError):
        parse_sensors_json(output)


def test_average_rounds_half_away_from_zero():
    block, _ = _json_block([40, 41], collapsed=False, format="{average}")
    block.update()
    assert block.text.text == "41°"


def test_min_and_max_placeholders():
    temps = [30, 50, 40]
    block, _ = _json_block(temps, collapsed=False, format="{min}|{max}")
    block.update()
    low, high = block.text.text.split("|")
    assert low.startswith(str(min(temps)))
    assert high.startswith(str(max(temps)))


@pytest.mark.parametrize(
    "temps,state",
    [([20], State.GOOD), ([45], State.IDLE), ([60], State.INFO), ([80], State.WARNING), ([81], State.CRITICAL)],
)
def test_celsius_states(temps, state):
    block, _ = _json_block(temps)
    block.update()
    assert block.text.state is state


def test_fahrenheit_defaults_and_args():
    block, calls = _json_block([68], scale=TemperatureScale.FAHRENHEIT, chip="coretemp-isa-0000")
    block.update()
    assert calls == [["-j", "-f", "coretemp-isa-0000"]]
    assert block.text.state is State.GOOD
    assert block.maximum_warning == 176


def test_configured_thresholds_override_defaults():
    block, _ = _json_block([30], good=10, idle=25, info=35)
    block.update()
    assert block.text.state is State.INFO


def test_fallback_uses_text_output():
    calls = []

    def runner(args):
        calls.append(args)
        return TEXT_OUTPUT

    block = Temperature(
        TemperatureConfig(collapsed=False, format="{max}"), runner=runner, fallback_required=True
    )
    block.update()
    assert calls == [["-u"]]
    assert block.text.text.startswith("45")


def test_collapsed_hides_text_until_clicked():
    block, _ = _json_block([50])
    block.update()
    assert block.text.text == ""
    assert block.text.spacing is Spacing.HIDDEN
    block.click(ClickEvent(MouseButton.LEFT))
    assert block.text.text == block.output
    assert block.text.spacing is Spacing.NORMAL
    block.click(ClickEvent(MouseButton.LEFT))
    assert block.text.text == ""


def test_no_readings_keeps_previous_state():
    block, _ = _json_block([])
    assert block.update() == 5.0
    assert block.output == ""
    assert block.text.state is State.IDLE


def test_invalid_format_raises():
    with pytest.raises(BlockError):
        Temperature(TemperatureConfig(format="{max"), fallback_required=False)