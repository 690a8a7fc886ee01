# barblocks

Status bar blocks for i3bar-compatible bars. Each block reads some piece of
system state, turns it into `TextWidget`s that carry text, an icon name, a
`State` (idle, info, good, warning, critical) and a `Spacing`, and reacts to
mouse clicks.

## Blocks

| Module                  | Class             | Shows                                                   |
|-------------------------|-------------------|---------------------------------------------------------|
| `barblocks.base`        | `Template`        | a fixed text; the module also holds the shared types    |
| `barblocks.time`        | `Time`            | the current time in a strftime format, zone and locale  |
| `barblocks.pomodoro`    | `Pomodoro`        | a pomodoro timer with breaks                            |
| `barblocks.speedtest`   | `SpeedTest`       | ping, download and upload from `speedtest-cli --simple` |
| `barblocks.pacman`      | `Pacman`          | pending pacman and AUR updates                          |
| `barblocks.taskwarrior` | `Taskwarrior`     | the number of tasks matching the active filter          |
| `barblocks.temperature` | `Temperature`     | average, minimum and maximum `sensors` temperatures     |
| `barblocks.nvidia_gpu`  | `NvidiaGpu`       | GPU name, load, memory, temperature, fan, clocks, power |
| `barblocks.toggle`      | `Toggle`          | an on/off switch driven by shell commands               |

`barblocks.sound_devices` holds `AlsaSoundDevice`, an ALSA mixer control read
and changed with `amixer` (`get_info()`, `set_volume(step, max_vol)`,
`toggle()`, `monitor(on_event)`), together with `parse_amixer_output`,
`DeviceKind` and `SoundDriver`.

Blocks start the usual tools, which must be installed for that block to
work: `sensors`, `nvidia-smi` and `nvidia-settings`, `amixer` and
`alsactl`, `task`, `fakeroot` and `pacman`, `speedtest-cli`, `i3-nagbar`
(pomodoro with `use_nag=True`), and `$SHELL` or `sh` for toggles.

## Usage

Each block is built from its config dataclass. `update()` refreshes it and
returns the number of seconds until the next refresh is due, or `None`;
`view()` returns the widgets to draw; `click(event)` handles a
`ClickEvent`.

```python
from barblocks.base import ClickEvent, MouseButton
from barblocks.pomodoro import Pomodoro, PomodoroConfig

timer = Pomodoro(PomodoroConfig(length=25, break_length=5))
timer.click(ClickEvent(button=MouseButton.LEFT))   # start
print(timer.status_text())                         # "0 | <icon> 0:00"
timer.click(ClickEvent(button=MouseButton.RIGHT))  # stop and reset the count
```

```python
from barblocks.toggle import Toggle, ToggleConfig

wifi = Toggle(ToggleConfig(
    command_on="nmcli radio wifi on",
    command_off="nmcli radio wifi off",
    command_state="nmcli radio wifi | grep enabled",
))
wifi.update()
print(wifi.toggled, wifi.view()[0].icon)
```

Format strings use `{name}` placeholders and are rendered by
`FormatTemplate`; a placeholder without a value, or a stray brace, raises
`BlockError`:

```python
from barblocks.base import FormatTemplate

FormatTemplate("{pacman} updates").render({"pacman": 3})  # "3 updates"
```

A block that cannot do its work raises `BlockError`, whose `block` and
`message` attributes say where and why.

Several blocks accept hooks for their outside inputs, which also makes them
easy to test: `Time(clock=...)`, `Pomodoro(clock=...)`,
`SpeedTest(runner=..., on_result=...)`,
`Taskwarrior(count_tasks=..., taskwarrior_available=...)`,
`Temperature(runner=..., fallback_required=...)`,
`NvidiaGpu(smi_runner=..., settings_runner=...)` and
`AlsaSoundDevice(runner=...)`.

## What is not included

- There is no bar program: nothing here reads the bar's click events or
  writes the i3bar protocol. A caller drives the blocks itself.
- There is no uptime block.
- There is no volume block: `barblocks.sound_devices` provides the ALSA
  mixer device only, with no widget, icons or click handling of its own,
  and no PulseAudio support.

## Development

```
pip install -e .[test]
pytest
```