"""Preset record and its JSON representation.

The record keys mirror the layout presets have always been stored with
(``enabledPlugins``, ``pluginSettings``...), so files written by earlier releases load
unchanged.
"""
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, Optional


class SelectionState(Enum):
    """
    Whether a preset is the active one.

    'Active' means the preset was applied or matches the live enablement.
    'Stale' means it was explicitly deselected, or it was active and the live
    configuration has since drifted.
    'Unset' means the state was never evaluated.
    """
    Active = True
    Stale = False
    Unset = None

    @classmethod
    def from_json(cls, value: Optional[bool]) -> 'SelectionState':
        return cls(value)


class Origin(Enum):
    """
    Where a preset is stored.

    'LocalOnly' presets live in the presets directory of this device.
    'Synced' presets live in the remote mirror.
    'Unclassified' presets were never assigned and are stored locally.
    """
    LocalOnly = True
    Synced = False
    Unclassified = None

    @classmethod
    def from_json(cls, value: Optional[bool]) -> 'Origin':
        return cls(value)


def new_preset_id(taken: Iterable[int] = ()) -> int:
    """Return a millisecond timestamp id not present in ``taken``."""
    taken = set(taken)
    preset_id = int(time.time() * 1000)
    while preset_id in taken:
        preset_id += 1
    return preset_id


def _check_enabled(value: Any) -> Dict[str, bool]:
    if not isinstance(value, dict):
        raise ValueError('enabledPlugins must be an object')
    for k, v in value.items():
        if not isinstance(k, str) or not isinstance(v, bool):
            raise ValueError(f'Invalid enabledPlugins entry: {k!r}={v!r}')
    return dict(value)


def _check_settings(value: Any) -> Dict[str, Dict[str, Optional[str]]]:
    if not isinstance(value, dict):
        raise ValueError('pluginSettings must be an object')
    settings = {}
    for group, values in value.items():
        if not isinstance(group, str) or not isinstance(values, dict):
            raise ValueError(f'Invalid pluginSettings group: {group!r}')
        for k, v in values.items():
            if not isinstance(k, str) or not (v is None or isinstance(v, str)):
                raise ValueError(f'Invalid pluginSettings value: {group}.{k}={v!r}')
        settings[group] = dict(values)
    return settings


def _check_tristate(data: Dict[str, Any], key: str) -> Optional[bool]:
    value = data.get(key)
    if value is not None and not isinstance(value, bool):
        raise ValueError(f'{key} must be true, false or null')
    return value


@dataclass
class Preset:
    """A named snapshot of plugin enablement and plugin settings.

    ``plugin_settings`` values of ``None`` mean the key was captured but had no value;
    they are never written back on apply.
    """
    id: int
    name: str
    local: Origin = Origin.Unclassified
    selected: SelectionState = SelectionState.Unset
    enabled_plugins: Dict[str, bool] = field(default_factory=dict)
    plugin_settings: Dict[str, Dict[str, Optional[str]]] = field(default_factory=dict)
    keybind: Optional[str] = None

    def __repr__(self) -> str:
        return (f'<Preset id={self.id}, name={self.name!r}, '
                f'selected={self.selected.name}, local={self.local.name}>')

    @property
    def is_selected(self) -> bool:
        return self.selected is SelectionState.Active

    @property
    def is_stale(self) -> bool:
        return self.selected is SelectionState.Stale

    @property
    def is_local(self) -> bool:
        """True unless the preset is stored in the remote mirror."""
        return self.local is not Origin.Synced

    def to_dict(self) -> Dict[str, Any]:
        """Return the JSON record for this preset. Maps are copied."""
        return {
            'id': self.id,
            'name': self.name,
            'local': self.local.value,
            'selected': self.selected.value,
            'enabledPlugins': dict(self.enabled_plugins),
            'pluginSettings': {g: dict(v) for g, v in self.plugin_settings.items()},
            'keybind': self.keybind,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Preset':
        """Build a preset from a JSON record.

        Unknown keys are ignored. ``local``, ``selected``, ``pluginSettings`` and
        ``keybind`` default when missing.

        Raises:
            ValueError: If a required field is missing or a known field has the wrong type.
        """
        if not isinstance(data, dict):
            raise ValueError('Preset record must be an object')

        preset_id = data.get('id')
        if not isinstance(preset_id, int) or isinstance(preset_id, bool):
            raise ValueError(f'Invalid preset id: {preset_id!r}')

        name = data.get('name')
        if not isinstance(name, str) or not name:
            raise ValueError(f'Invalid preset name: {name!r}')

        if 'enabledPlugins' not in data:
            raise ValueError('Missing enabledPlugins')

        keybind = data.get('keybind')
        if keybind is not None and not isinstance(keybind, str):
            raise ValueError(f'Invalid keybind: {keybind!r}')

        return cls(
            id=preset_id,
            name=name,
            local=Origin.from_json(_check_tristate(data, 'local')),
            selected=SelectionState.from_json(_check_tristate(data, 'selected')),
            enabled_plugins=_check_enabled(data['enabledPlugins']),
            plugin_settings=_check_settings(data.get('pluginSettings', {})),
            keybind=keybind or None,
        )
