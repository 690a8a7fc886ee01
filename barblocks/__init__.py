"""Status bar blocks for clock, pomodoro, speedtest, updates, tasks, temperature, GPU, toggles and ALSA mixer."""

__version__ = "0.20.0"