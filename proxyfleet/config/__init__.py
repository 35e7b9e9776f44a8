"""Configuration module: settings and runtime preferences."""

from proxyfleet.config.preferences import FleetPreferences, PreferencesUpdate
from proxyfleet.config.settings import FleetSettings

__all__ = [
    "FleetPreferences",
    "FleetSettings",
    "PreferencesUpdate",
]
