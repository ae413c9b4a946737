"""Settings for the raffles app, read from ``settings.RAFFLES``."""

from django.conf import settings

from raffles.domain import HoldWindow

DEFAULTS = {
    "HOLD_MINUTES": 30,
    "SWEEP_INTERVAL_SECONDS": 30,
}


def get(name: str):
    return getattr(settings, "RAFFLES", {}).get(name, DEFAULTS[name])


def hold_window() -> HoldWindow:
    return HoldWindow.minutes(int(get("HOLD_MINUTES")))


def sweep_interval() -> float:
    return float(get("SWEEP_INTERVAL_SECONDS"))
