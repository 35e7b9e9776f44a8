"""Integration with the proxy engine's external controller."""

from proxyfleet.integration.controller_client import ControllerClient

__all__ = ["ControllerClient"]
