"""Plugin registry adapters.

- :class:`PluginRegistry` – the abstract adapter over the host's plugin manager.
- :class:`MemoryPluginRegistry` – an in-process registry for tests and headless tooling.
"""
import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from PySide6 import QtCore

from ..status import status


@dataclass(frozen=True)
class PluginInfo:
    """A plugin known to the host.

    Attributes:
        name: Display name, unique within the registry.
        config_group: Configuration group holding the plugin's settings, if any.
    """
    name: str
    config_group: Optional[str] = None


class PluginRegistry(QtCore.QObject):
    """Enumerate plugins and toggle them on and off.

    Signals:
        pluginToggled (str, bool): Emitted after a plugin's enabled flag changes.
        pluginsChanged (): Emitted when plugins are installed or removed.
    """
    pluginToggled = QtCore.Signal(str, bool)
    pluginsChanged = QtCore.Signal()

    def list_plugins(self) -> List[PluginInfo]:
        raise NotImplementedError

    def is_enabled(self, name: str) -> bool:
        raise NotImplementedError

    def set_enabled(self, name: str, enabled: bool) -> None:
        raise NotImplementedError

    def start(self, name: str) -> None:
        """Start a plugin's runtime effects.

        Raises:
            status.PluginStartFailedException: If the plugin could not be started.
        """
        raise NotImplementedError

    def stop(self, name: str) -> None:
        """Stop a plugin's runtime effects.

        Raises:
            status.PluginStopFailedException: If the plugin could not be stopped.
        """
        raise NotImplementedError

    def plugin_names(self) -> List[str]:
        return [p.name for p in self.list_plugins()]


class MemoryPluginRegistry(PluginRegistry):
    """In-process :class:`PluginRegistry`.

    ``start_hooks`` and ``stop_hooks`` let callers attach a callable per plugin that runs
    on start/stop; an exception raised by a hook is reported as a start/stop failure.
    """

    def __init__(self, parent: Optional[QtCore.QObject] = None) -> None:
        super().__init__(parent)
        self._plugins: Dict[str, PluginInfo] = {}
        self._enabled: Dict[str, bool] = {}
        self.running: Dict[str, bool] = {}
        self.start_hooks: Dict[str, Callable[[], None]] = {}
        self.stop_hooks: Dict[str, Callable[[], None]] = {}

    def install(self, name: str, config_group: Optional[str] = None, enabled: bool = True) -> PluginInfo:
        info = PluginInfo(name=name, config_group=config_group)
        self._plugins[name] = info
        self._enabled[name] = enabled
        self.running[name] = enabled
        self.pluginsChanged.emit()
        return info

    def uninstall(self, name: str) -> None:
        self._plugins.pop(name, None)
        self._enabled.pop(name, None)
        self.running.pop(name, None)
        self.pluginsChanged.emit()

    def list_plugins(self) -> List[PluginInfo]:
        return list(self._plugins.values())

    def is_enabled(self, name: str) -> bool:
        if name not in self._plugins:
            raise KeyError(f'Unknown plugin: {name}')
        return self._enabled[name]

    def set_enabled(self, name: str, enabled: bool) -> None:
        if name not in self._plugins:
            raise KeyError(f'Unknown plugin: {name}')
        if self._enabled[name] == enabled:
            return
        self._enabled[name] = enabled
        self.pluginToggled.emit(name, enabled)

    def start(self, name: str) -> None:
        hook = self.start_hooks.get(name)
        try:
            if hook:
                hook()
        except Exception as ex:
            raise status.PluginStartFailedException(f'"{name}": {ex}') from ex
        self.running[name] = True
        logging.debug(f'Started plugin "{name}"')

    def stop(self, name: str) -> None:
        hook = self.stop_hooks.get(name)
        try:
            if hook:
                hook()
        except Exception as ex:
            raise status.PluginStopFailedException(f'"{name}": {ex}') from ex
        self.running[name] = False
        logging.debug(f'Stopped plugin "{name}"')
