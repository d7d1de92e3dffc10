"""Capture the live plugin state and compare it with presets."""
import logging
from typing import Dict, Optional

from ..core.config import ConfigStore
from ..core.plugins import PluginRegistry
from ..settings.lib import IgnoreRules
from ..status import status
from .model import Preset


class SnapshotEngine:
    """Read enablement and settings from the host adapters.

    Ignored plugins, groups and credential-like keys never make it into a capture,
    whatever the adapters report.
    """

    def __init__(self, config_store: ConfigStore, plugin_registry: PluginRegistry,
                 rules: Optional[IgnoreRules] = None) -> None:
        self.config_store = config_store
        self.plugin_registry = plugin_registry
        self.rules = rules or IgnoreRules()

    def capture_enabled_plugins(self) -> Dict[str, bool]:
        enabled = {}
        for plugin in self.plugin_registry.list_plugins():
            if self.rules.plugin_ignored(plugin.name):
                continue
            enabled[plugin.name] = bool(self.plugin_registry.is_enabled(plugin.name))
        return enabled

    def capture_plugin_settings(self) -> Dict[str, Dict[str, Optional[str]]]:
        """Read every configurable key of every non-ignored plugin.

        Plugins without a configuration descriptor, or with no keys, are skipped.
        Missing values are captured as None.
        """
        settings = {}
        for plugin in self.plugin_registry.list_plugins():
            if self.rules.plugin_ignored(plugin.name):
                continue
            try:
                descriptor = self.config_store.describe(plugin)
            except status.PluginConfigUnresolvableException:
                continue
            if not descriptor.keys or self.rules.group_ignored(descriptor.group):
                continue

            values = {}
            for key in descriptor.keys:
                if self.rules.key_ignored(key):
                    continue
                values[key] = self.config_store.get_value(descriptor.group, key)
            if values:
                settings[descriptor.group] = values
        return settings

    def capture_into(self, preset: Preset) -> Preset:
        """Replace the preset's maps with the live state and return it."""
        preset.enabled_plugins = self.capture_enabled_plugins()
        preset.plugin_settings = self.capture_plugin_settings()
        logging.debug(f'Captured {len(preset.enabled_plugins)} plugins and '
                      f'{len(preset.plugin_settings)} setting groups into {preset.name!r}')
        return preset

    def matches(self, preset: Preset, enabled: Optional[Dict[str, bool]] = None) -> bool:
        """True if the live enablement equals the preset's. Settings are not compared.

        Args:
            preset: The preset to compare.
            enabled: A capture to reuse when checking many presets at once.
        """
        if enabled is None:
            enabled = self.capture_enabled_plugins()
        return enabled == preset.enabled_plugins
