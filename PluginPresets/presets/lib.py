import logging
import pathlib
from typing import Dict, List, Optional, Union

from PySide6 import QtCore

from . import sharing
from .apply import ApplyEngine, ApplyReport, ReentrancyGuard
from .model import Origin, Preset, SelectionState, new_preset_id
from .snapshot import SnapshotEngine
from .storage import PresetStorage
from ..core.config import ConfigStore
from ..core.plugins import PluginRegistry
from ..core.signals import signals
from ..log.log import preset_extra
from ..settings import lib
from ..status import status


class PresetsAPI(QtCore.QObject):
    """
    Manages the working set of presets: creation from the live plugin state, selection,
    updates, removal, activation, sharing, and drift detection.

    The working set is rebuilt from storage after every structural change, so the
    in-memory list and the stored copies never diverge. Every method must be called
    from the thread this object lives in; host notifications reach it through Qt
    signals and are queued onto that thread.
    """

    # Signals to notify views of changes
    presetsReloaded = QtCore.Signal()
    presetAdded = QtCore.Signal(int)
    presetRemoved = QtCore.Signal(int)
    presetRenamed = QtCore.Signal(int)
    presetUpdated = QtCore.Signal(int)
    presetActivated = QtCore.Signal(int)
    selectionChanged = QtCore.Signal()
    driftDetected = QtCore.Signal()
    pluginListChanged = QtCore.Signal()

    def __init__(
            self,
            config_store: ConfigStore,
            plugin_registry: PluginRegistry,
            presets_dir: Optional[pathlib.Path] = None,
            rules: Optional[lib.IgnoreRules] = None,
            parent: Optional[QtCore.QObject] = None,
    ) -> None:
        super().__init__(parent)
        self.config_store = config_store
        self.plugin_registry = plugin_registry
        self.rules = rules or lib.IgnoreRules()

        self.paths = lib.ConfigPaths(presets_dir)
        self.guard = ReentrancyGuard()
        self.snapshot = SnapshotEngine(config_store, plugin_registry, self.rules)
        self.applier = ApplyEngine(config_store, plugin_registry, self.rules, self.guard)
        self.storage = PresetStorage(config_store, self.paths.presets_dir, parent=self)

        self._items: List[Preset] = []
        self._keybinds: Dict[str, int] = {}

        self._connect_signals()
        self.load_presets()

    def _connect_signals(self) -> None:
        self.config_store.configChanged.connect(self.on_config_changed)
        self.plugin_registry.pluginToggled.connect(self.on_plugin_toggled)
        self.plugin_registry.pluginsChanged.connect(self.on_plugins_changed)

    def load_presets(self) -> None:
        """Rebuild the working set from storage.

        Ignore rules are reapplied, at most one preset stays selected (local copies
        are read first and win), the list is sorted by name and the keybind index is
        rebuilt.
        """
        self._items.clear()
        active = None
        demoted = False
        for preset in self.storage.load():
            preset.enabled_plugins = self.rules.filter_enabled(preset.enabled_plugins)
            preset.plugin_settings = self.rules.filter_settings(preset.plugin_settings)
            if preset.is_selected:
                if active is None:
                    active = preset
                else:
                    logging.debug(f'Deselected {preset!r}: {active!r} is already selected')
                    preset.selected = SelectionState.Stale
                    demoted = True
            self._items.append(preset)
        if demoted:
            self.save_presets()
        self._items.sort(key=lambda p: p.name)
        self._rebuild_keybinds()
        # notify listeners that list was reloaded
        self.presetsReloaded.emit()
        signals.presetsChanged.emit()

    def _rebuild_keybinds(self) -> None:
        self._keybinds.clear()
        for preset in self._items:
            if preset.keybind and preset.keybind not in self._keybinds:
                self._keybinds[preset.keybind] = preset.id

    def save_presets(self) -> None:
        """Persist the working set. Disk writes complete in the background."""
        self.storage.save(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(self._items)

    def __getitem__(self, key: Union[int, str]) -> Preset:
        if isinstance(key, int):
            return self._items[key]
        if isinstance(key, str):
            for item in self._items:
                if item.name == key:
                    return item
            raise KeyError(f'No preset named \'{key}\'')
        raise TypeError('Key must be int or str')

    def get(self, name: str) -> Optional[Preset]:
        """Return the first preset with the given name, or None if not found."""
        return next((item for item in self._items if item.name == name), None)

    def get_by_id(self, preset_id: int) -> Optional[Preset]:
        return next((item for item in self._items if item.id == preset_id), None)

    def _index(self, preset: Preset) -> Optional[int]:
        return next((i for i, item in enumerate(self._items) if item.id == preset.id), None)

    def items(self) -> List[Preset]:
        """Return a snapshot list of all presets."""
        return list(self._items)

    def selected(self) -> Optional[Preset]:
        return next((item for item in self._items if item.is_selected), None)

    def preset_for_keybind(self, keybind: str) -> Optional[Preset]:
        """Return the preset bound to a key chord. The first bound preset by name wins."""
        preset_id = self._keybinds.get(keybind)
        return None if preset_id is None else self.get_by_id(preset_id)

    def new(self, name: str = '', from_empty: bool = False) -> Preset:
        """Create a preset and select it.

        Args:
            name: Display name. Blank names become ``"Preset <count + 1>"``.
            from_empty: Start with empty maps instead of capturing the live state.

        Returns:
            The new preset, as loaded back from storage.

        Raises:
            status.PresetNameInvalidException: If the name uses disallowed characters.
        """
        name = (name or '').strip() or lib.default_preset_name(len(self._items))
        if not lib.is_valid_preset_name(name):
            raise status.PresetNameInvalidException(f'"{name}"')

        preset = Preset(id=new_preset_id(p.id for p in self._items), name=name)
        if not from_empty:
            self.snapshot.capture_into(preset)

        self._items.append(preset)
        self.select(preset)
        self.load_presets()

        logging.debug(f'Created preset {name!r}')
        idx = self._index(preset)
        if idx is not None:
            self.presetAdded.emit(idx)
        return self.get_by_id(preset.id)

    def select(self, preset: Optional[Preset]) -> None:
        """Make a preset the only active one, or deselect all when given None."""
        self._set_selected(preset, SelectionState.Active)

    def _set_selected(self, preset: Optional[Preset], state: SelectionState) -> None:
        for item in self._items:
            item.selected = SelectionState.Stale

        if preset is not None:
            target = self.get_by_id(preset.id)
            if target is None:
                logging.warning(f'Cannot select {preset!r}: not in the working set')
            else:
                target.selected = state
                preset.selected = state

        self.save_presets()
        self._rebuild_keybinds()
        self.selectionChanged.emit()
        signals.presetSelectionChanged.emit()

    def update(self, preset: Preset) -> Preset:
        """Recapture the live state into an existing preset id and select it."""
        target = self.get_by_id(preset.id)
        if target is None:
            target = preset
            self._items.append(target)
        self.snapshot.capture_into(target)
        # select() persists the new capture
        self.select(target)
        self.load_presets()

        idx = self._index(target)
        if idx is not None:
            self.presetUpdated.emit(idx)
        logging.debug(f'Updated preset snapshot: {target.name}')
        return self.get_by_id(target.id)

    def remove(self, preset: Preset) -> bool:
        """Remove a preset from the working set and storage.

        Returns:
            bool: False if the preset was not in the working set.
        """
        idx = self._index(preset)
        if idx is None:
            logging.warning(f'Cannot remove {preset!r}: not in the working set')
            return False
        self._items.pop(idx)
        self.save_presets()
        self.presetRemoved.emit(idx)
        self.load_presets()
        logging.debug(f'Removed preset: {preset.name}')
        return True

    def rename(self, preset: Preset, new_name: str) -> bool:
        """
        Rename a preset and re-sort the working set.
        Returns True on success, False otherwise.
        """
        new_name = (new_name or '').strip()
        if not new_name:
            logging.warning('Ignored empty new_name')
            return False
        if not lib.is_valid_preset_name(new_name):
            logging.warning(f'Ignored invalid preset name: {new_name!r}')
            return False
        target = self.get_by_id(preset.id)
        if target is None:
            return False

        target.name = new_name
        preset.name = new_name
        self.save_presets()
        self.load_presets()

        idx = self._index(target)
        if idx is not None:
            self.presetRenamed.emit(idx)
        return True

    def set_local(self, preset: Preset, local: bool) -> None:
        """Move a preset between the presets directory and the remote mirror."""
        target = self.get_by_id(preset.id)
        if target is None:
            return
        target.local = Origin.LocalOnly if local else Origin.Synced
        self.save_presets()
        self.load_presets()

    def set_keybind(self, preset: Preset, keybind: Optional[str]) -> None:
        target = self.get_by_id(preset.id)
        if target is None:
            return
        target.keybind = keybind or None
        self.save_presets()
        self._rebuild_keybinds()

    def activate(self, preset: Preset) -> ApplyReport:
        """Apply a preset's settings and enablement to the host, then select it.

        Per-plugin failures are collected in the returned report and never raised.
        """
        signals.presetAboutToBeActivated.emit()
        report = self.applier.apply(preset)

        if self.get_by_id(preset.id) is not None:
            self.select(preset)
            idx = self._index(preset)
            if idx is not None:
                self.presetActivated.emit(idx)
        signals.presetActivated.emit()
        logging.debug(f'Activated preset: {preset.name}')
        return report

    def export_preset(self, preset: Preset) -> str:
        return sharing.encode(preset)

    def import_preset(self, text: str) -> Optional[Preset]:
        """Decode shared text and add the preset to the working set.

        Returns:
            The imported preset, or None if the text could not be decoded. The working
            set is unchanged on failure.
        """
        try:
            preset = sharing.decode(text, taken_ids=(p.id for p in self._items))
        except status.PresetDecodeException as ex:
            logging.warning(f'Import failed: {ex}')
            return None

        preset.enabled_plugins = self.rules.filter_enabled(preset.enabled_plugins)
        preset.plugin_settings = self.rules.filter_settings(preset.plugin_settings)

        self._items.append(preset)
        self.save_presets()
        self.load_presets()

        idx = self._index(preset)
        if idx is not None:
            self.presetAdded.emit(idx)
        logging.debug(f'Imported preset {preset.name!r}')
        return self.get_by_id(preset.id)

    def missing_plugins(self, preset: Preset) -> List[str]:
        """Plugins the preset references that are not installed."""
        installed = set(self.plugin_registry.plugin_names())
        missing = [
            name for name in preset.enabled_plugins
            if name not in installed and not self.rules.plugin_ignored(name)
        ]
        if missing:
            logging.info(f'{status.get_message(status.Status.MissingPlugins)} {", ".join(missing)}',
                         extra=preset_extra(preset.name))
        return missing

    def new_plugins(self, preset: Preset) -> List[str]:
        """Installed plugins the preset never captured."""
        new = [
            name for name in self.plugin_registry.plugin_names()
            if name not in preset.enabled_plugins and not self.rules.plugin_ignored(name)
        ]
        if new:
            logging.info(f'{status.get_message(status.Status.NewPlugins)} {", ".join(new)}',
                         extra=preset_extra(preset.name))
        return new

    def check_drift(self) -> None:
        """Select the single preset matching the live enablement, or mark the active one stale."""
        enabled = self.snapshot.capture_enabled_plugins()
        matching = [p for p in self._items if self.snapshot.matches(p, enabled)]

        if len(matching) == 1:
            if not matching[0].is_selected:
                logging.debug(f'Live configuration matches {matching[0].name!r}')
                self.select(matching[0])
            return

        current = self.selected()
        if current is None:
            return
        logging.debug(f'Live configuration drifted from {current.name!r}')
        current.selected = SelectionState.Stale
        self.save_presets()
        self.selectionChanged.emit()
        self.driftDetected.emit()
        signals.presetDrifted.emit()

    @QtCore.Slot(str, str)
    def on_config_changed(self, group: str, key: str) -> None:
        if self.guard.active or group == lib.MIRROR_GROUP:
            return
        self.check_drift()

    @QtCore.Slot(str, bool)
    def on_plugin_toggled(self, name: str, enabled: bool) -> None:
        if self.guard.active or self.rules.plugin_ignored(name):
            return
        self.check_drift()

    @QtCore.Slot()
    def on_plugins_changed(self) -> None:
        self.pluginListChanged.emit()
        signals.pluginsChanged.emit()

    @QtCore.Slot()
    def on_login_changed(self) -> None:
        """The mirror belongs to the signed-in account, so reload everything."""
        self.load_presets()

    @QtCore.Slot(str)
    def on_hotkey(self, keybind: str) -> Optional[ApplyReport]:
        preset = self.preset_for_keybind(keybind)
        if preset is None:
            return None
        return self.activate(preset)

    def shutdown(self) -> None:
        """Flush pending writes, drop the working set and remove an empty presets directory."""
        self.config_store.configChanged.disconnect(self.on_config_changed)
        self.plugin_registry.pluginToggled.disconnect(self.on_plugin_toggled)
        self.plugin_registry.pluginsChanged.disconnect(self.on_plugins_changed)
        self.storage.shutdown()
        self._items.clear()
        self._keybinds.clear()
