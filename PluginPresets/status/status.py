"""Status definitions and exceptions for PluginPresets.

This module provides:
    - Status: enumeration of possible preset engine states
    - STATUS_MESSAGE: user-facing messages for each status
    - get_message: retrieve the message for a status
    - BaseStatusException: base exception carrying a Status
    - Specific exceptions (e.g., PresetDecodeException) for error handling in the engines
"""
import enum
import logging
from typing import Dict


class Status(enum.StrEnum):
    """Enumeration of preset engine status codes."""
    UnknownStatus = enum.auto()

    # Sharing
    PresetDecodeFailed = enum.auto()

    # Preset naming
    PresetNameInvalid = enum.auto()

    # Plugin runtime
    PluginStartFailed = enum.auto()
    PluginStopFailed = enum.auto()
    PluginConfigUnresolvable = enum.auto()

    # Persistence
    StorageWriteFailed = enum.auto()

    # Informational reports
    MissingPlugins = enum.auto()
    NewPlugins = enum.auto()


STATUS_MESSAGE: Dict[Status, str] = {
    Status.UnknownStatus: 'Unknown status.',

    Status.PresetDecodeFailed: 'Could not read the preset. Is the copied text complete?',

    Status.PresetNameInvalid: 'Preset names may only contain letters, numbers, spaces and -_.,()+',

    Status.PluginStartFailed: 'A plugin could not be started.',
    Status.PluginStopFailed: 'A plugin could not be stopped.',
    Status.PluginConfigUnresolvable: 'The plugin has no configuration to capture.',

    Status.StorageWriteFailed: 'Could not save presets. Changes are kept until the next save.',

    Status.MissingPlugins: 'The preset uses plugins that are not installed.',
    Status.NewPlugins: 'Some installed plugins are not saved in the preset.',
}


def get_message(status: Status) -> str:
    """
    Get the message for a given status.

    Args:
        status (Status): The status enum.

    Returns:
        str: The message associated with the status.
    """
    return STATUS_MESSAGE.get(status, 'Unknown status')


class BaseStatusException(Exception):
    """Base exception for status-based errors in PluginPresets.

    Attributes:
        status (Status): Status code associated with this error.
        status_message (str): User-facing message for the status.
        level (int): Logging level used when the exception is created.

    Args:
        message (str): Optional additional context for the error.
    """
    status = Status.UnknownStatus
    level = logging.ERROR

    def __init__(self, message: str = None):
        self.status_message = get_message(self.status)
        exception_message = f'{self.status_message} {message}' if message else self.status_message
        super().__init__(exception_message)

        logging.log(self.level, exception_message)

        if self.level < logging.ERROR:
            return

        from ..core.signals import signals
        signals.error.emit(message or self.status_message)


class PresetDecodeException(BaseStatusException):
    """Exception raised when shared preset text cannot be decoded."""
    status = Status.PresetDecodeFailed


class PresetNameInvalidException(BaseStatusException):
    """Exception raised when a preset name contains characters outside the allowed set."""
    status = Status.PresetNameInvalid


class PluginStartFailedException(BaseStatusException):
    """Exception raised by a plugin registry when a plugin fails to start."""
    status = Status.PluginStartFailed
    level = logging.WARNING


class PluginStopFailedException(BaseStatusException):
    """Exception raised by a plugin registry when a plugin fails to stop."""
    status = Status.PluginStopFailed
    level = logging.WARNING


class PluginConfigUnresolvableException(BaseStatusException):
    """Raised when a plugin exposes no configuration descriptor. Not an error for callers."""
    status = Status.PluginConfigUnresolvable
    level = logging.DEBUG


class StorageWriteFailedException(BaseStatusException):
    """Exception raised when presets could not be written to disk or the mirror."""
    status = Status.StorageWriteFailed
