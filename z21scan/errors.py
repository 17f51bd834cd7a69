from __future__ import annotations


class Z21ScanError(Exception):
    """Base class for errors reported to the user."""


class ConfigError(Z21ScanError):
    """Raised before any probe is dispatched."""


class InvalidNetworkAddress(ConfigError):
    pass


class InterfaceNotFound(ConfigError):
    pass


class NoIPv4Address(ConfigError):
    pass


class InvalidOutputFormat(ConfigError):
    pass


class InvalidOption(ConfigError):
    pass


class RenderError(Z21ScanError):
    """Raised when the final results cannot be written."""
