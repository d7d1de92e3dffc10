"""Configuration store adapters.

The host owns plugin configuration. The preset engine reads and writes it only
through :class:`ConfigStore`:

- :class:`ConfigStore` – the abstract adapter the engines depend on.
- :class:`MemoryConfigStore` – dictionary backed store, used by tests and headless tooling.
- :class:`SettingsConfigStore` – a ``QSettings`` backed store for hosts without their own config layer.
"""
import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from PySide6 import QtCore

from .plugins import PluginInfo
from ..status import status


@dataclass(frozen=True)
class ConfigDescriptor:
    """Configurable keys a plugin exposes under its configuration group."""
    group: str
    keys: Tuple[str, ...] = field(default_factory=tuple)


class ConfigStore(QtCore.QObject):
    """Read/write access to the host's (group, key) string configuration.

    Signals:
        configChanged (str, str): Emitted with ``(group, key)`` after a value is set or unset.
    """
    configChanged = QtCore.Signal(str, str)

    def get_value(self, group: str, key: str) -> Optional[str]:
        raise NotImplementedError

    def set_value(self, group: str, key: str, value: str) -> None:
        raise NotImplementedError

    def unset(self, group: str, key: str) -> None:
        raise NotImplementedError

    def describe(self, plugin: PluginInfo) -> ConfigDescriptor:
        """Return the configurable keys of a plugin.

        Raises:
            status.PluginConfigUnresolvableException: If the plugin has no configuration descriptor.
        """
        raise NotImplementedError


class MemoryConfigStore(ConfigStore):
    """Dictionary backed :class:`ConfigStore`.

    Descriptors are registered per group with :meth:`register`; plugins are matched to
    them through :attr:`PluginInfo.config_group`.
    """

    def __init__(self, parent: Optional[QtCore.QObject] = None) -> None:
        super().__init__(parent)
        self._lock = threading.Lock()
        self._values: Dict[Tuple[str, str], str] = {}
        self._descriptors: Dict[str, Tuple[str, ...]] = {}

    def register(self, group: str, keys: List[str], defaults: Optional[Dict[str, str]] = None) -> None:
        """Declare the keys of a configuration group, optionally seeding values."""
        self._descriptors[group] = tuple(keys)
        for k, v in (defaults or {}).items():
            with self._lock:
                self._values[(group, k)] = v

    def get_value(self, group: str, key: str) -> Optional[str]:
        with self._lock:
            return self._values.get((group, key))

    def set_value(self, group: str, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise TypeError(f'Configuration values must be strings, got {type(value)}')
        with self._lock:
            self._values[(group, key)] = value
        self.configChanged.emit(group, key)

    def unset(self, group: str, key: str) -> None:
        with self._lock:
            if self._values.pop((group, key), None) is None:
                return
        self.configChanged.emit(group, key)

    def describe(self, plugin: PluginInfo) -> ConfigDescriptor:
        group = plugin.config_group
        if not group or group not in self._descriptors:
            raise status.PluginConfigUnresolvableException(f'"{plugin.name}"')
        return ConfigDescriptor(group=group, keys=self._descriptors[group])


class SettingsConfigStore(MemoryConfigStore):
    """:class:`ConfigStore` persisted to an ini file through ``QSettings``.

    Values live under ``<group>/<key>``. Descriptors are registered the same way as for
    :class:`MemoryConfigStore`.
    """

    def __init__(self, path: str, parent: Optional[QtCore.QObject] = None) -> None:
        super().__init__(parent)
        self._settings = QtCore.QSettings(str(path), QtCore.QSettings.Format.IniFormat)
        logging.debug(f'Using configuration file: {self._settings.fileName()}')

    def register(self, group: str, keys: List[str], defaults: Optional[Dict[str, str]] = None) -> None:
        self._descriptors[group] = tuple(keys)
        for k, v in (defaults or {}).items():
            if self.get_value(group, k) is None:
                self._settings.setValue(f'{group}/{k}', v)

    def get_value(self, group: str, key: str) -> Optional[str]:
        with self._lock:
            v = self._settings.value(f'{group}/{key}', None)
        return None if v is None else str(v)

    def set_value(self, group: str, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise TypeError(f'Configuration values must be strings, got {type(value)}')
        with self._lock:
            self._settings.setValue(f'{group}/{key}', value)
        self.configChanged.emit(group, key)

    def unset(self, group: str, key: str) -> None:
        with self._lock:
            if not self._settings.contains(f'{group}/{key}'):
                return
            self._settings.remove(f'{group}/{key}')
        self.configChanged.emit(group, key)

    def sync(self) -> None:
        """Flush pending values to disk."""
        self._settings.sync()
        if self._settings.status() != QtCore.QSettings.Status.NoError:
            raise status.StorageWriteFailedException(self._settings.fileName())
