"""Settings library for the preset engine.

Provides:
    - Application paths (the presets directory) resolved through Qt.
    - The static ignore rules for plugins, configuration groups and setting keys.
    - Preset name validation and sanitizing.
    - Constants shared by the storage, sharing and manager modules.
"""

import dataclasses
import logging
import pathlib
import re
from typing import Iterable, Optional, Tuple

from PySide6 import QtCore

app_name: str = 'PluginPresets'

DEFAULT_PRESET_NAME: str = 'Preset'

# Remote mirror location inside the host's own configuration
MIRROR_GROUP: str = 'pluginpresets'
MIRROR_KEY: str = 'presets'

IGNORED_PLUGINS: Tuple[str, ...] = (
    'Plugin Presets',
    'Configuration',
    'Xtea',
    'Twitch',
    'Notes',
    'Discord',
)

IGNORED_GROUPS: Tuple[str, ...] = (
    MIRROR_GROUP,
    'xtea',
    'twitch',
    'notes',
    'discord',
)

# Matched case-insensitively anywhere in a setting key
IGNORED_KEY_FRAGMENTS: Tuple[str, ...] = (
    'token',
    'oauth',
    'username',
    'password',
    'credential',
    'session',
    'notes',
)

PRESET_NAME_PATTERN: re.Pattern = re.compile(r'^[ A-Öa-ö0-9\-_.,()+]+$')
_INVALID_NAME_CHARS: re.Pattern = re.compile(r'[^ A-Öa-ö0-9\-_.,()+]')


def is_valid_preset_name(name: str) -> bool:
    """Check that a preset name only uses the allowed character set.

    Args:
        name (str): Candidate display name.

    Returns:
        bool: True if the name is non-empty and every character is allowed.
    """
    return bool(name) and bool(PRESET_NAME_PATTERN.fullmatch(name))


def sanitize_preset_name(name: str, fallback: str = DEFAULT_PRESET_NAME) -> str:
    """Strip disallowed characters from a name, falling back when nothing remains."""
    cleaned = _INVALID_NAME_CHARS.sub('', name or '').strip()
    return cleaned or fallback


def default_preset_name(count: int) -> str:
    """Return the placeholder name used for the preset created after ``count`` others."""
    return f'{DEFAULT_PRESET_NAME} {count + 1}'


@dataclasses.dataclass(frozen=True)
class IgnoreRules:
    """Exclusion rules for plugins and settings that presets never capture or apply.

    Engines receive an instance at construction so tests can pass narrower rules.

    Attributes:
        plugins: Plugin names excluded from enablement capture and apply.
        groups: Configuration group names excluded from settings capture and apply.
        key_fragments: Lower-case fragments; any setting key containing one is excluded.
    """
    plugins: frozenset = frozenset(IGNORED_PLUGINS)
    groups: frozenset = frozenset(IGNORED_GROUPS)
    key_fragments: Tuple[str, ...] = IGNORED_KEY_FRAGMENTS

    @classmethod
    def create(cls, plugins: Iterable[str] = (), groups: Iterable[str] = (),
               key_fragments: Iterable[str] = ()) -> 'IgnoreRules':
        return cls(
            plugins=frozenset(plugins),
            groups=frozenset(groups),
            key_fragments=tuple(f.lower() for f in key_fragments),
        )

    def plugin_ignored(self, name: str) -> bool:
        return name in self.plugins

    def group_ignored(self, group: str) -> bool:
        return group in self.groups

    def key_ignored(self, key: str) -> bool:
        lowered = key.lower()
        return any(fragment in lowered for fragment in self.key_fragments)

    def filter_enabled(self, enabled: dict) -> dict:
        """Return a copy of an enablement map without ignored plugins."""
        return {k: v for k, v in enabled.items() if not self.plugin_ignored(k)}

    def filter_settings(self, settings: dict) -> dict:
        """Return a copy of a settings map without ignored groups or keys."""
        filtered = {}
        for group, values in settings.items():
            if self.group_ignored(group):
                continue
            filtered[group] = {k: v for k, v in values.items() if not self.key_ignored(k)}
        return filtered


class ConfigPaths:
    """Resolve the directories the preset engine writes to.

    The presets directory defaults to ``<AppDataLocation>/presets``. It is not created
    here: the storage layer creates it on first write and removes it when left empty.
    """

    def __init__(self, presets_dir: Optional[pathlib.Path] = None) -> None:
        """Set up application paths.

        Args:
            presets_dir: Optional override for the presets directory.
        """
        QtCore.QCoreApplication.setApplicationName(app_name)
        QtCore.QCoreApplication.setOrganizationName('')

        if presets_dir is not None:
            self.presets_dir: pathlib.Path = pathlib.Path(presets_dir)
            logging.debug(f'Using presets directory override: {self.presets_dir}')
            return

        p = QtCore.QStandardPaths.writableLocation(QtCore.QStandardPaths.StandardLocation.AppDataLocation)
        app_data_dir = pathlib.Path(p) if p else pathlib.Path.home() / f'.{app_name.lower()}'
        logging.debug(f'Using app data directory: {app_data_dir}')

        self.presets_dir = app_data_dir / 'presets'
