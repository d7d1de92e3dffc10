"""
PluginPresets: snapshot and restore the plugin configuration of a host application.

This package provides:

- :mod:`PluginPresets.core` – Host adapters for configuration and plugins, and shared Qt signals.
- :mod:`PluginPresets.presets` – The preset record, capture/apply engines, storage, sharing and :class:`PresetsAPI`.
- :mod:`PluginPresets.settings` – Paths, ignore rules and naming rules.
- :mod:`PluginPresets.status` – Status codes and exceptions.
- :mod:`PluginPresets.log` – Logging setup with an in-memory log tank.

Use :func:`PluginPresets.create_api` to wire the manager to a host's adapters.
"""

import sys

# Fail on Python < 3.11
if not (sys.version_info.major == 3 and sys.version_info.minor >= 11):
    raise RuntimeError('PluginPresets requires Python 3.11 or higher.')

__version__ = '0.1.0'
__license__ = 'BSD-2-Clause'
__description__ = 'PluginPresets: create, share and restore presets of plugin configurations.'

from .log import log

log.setup_logging()


def create_api(config_store, plugin_registry, presets_dir=None):
    """Return a :class:`PluginPresets.presets.lib.PresetsAPI` bound to the host adapters.

    Args:
        config_store: The host's :class:`PluginPresets.core.config.ConfigStore`.
        plugin_registry: The host's :class:`PluginPresets.core.plugins.PluginRegistry`.
        presets_dir: Optional override of the presets directory.
    """
    from .presets.lib import PresetsAPI
    return PresetsAPI(config_store, plugin_registry, presets_dir=presets_dir)
