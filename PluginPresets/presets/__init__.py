"""
Preset engine: the record, capture, apply, storage, sharing and the manager API.

Modules:

- :mod:`PluginPresets.presets.model` – :class:`Preset` and its selection/origin states.
- :mod:`PluginPresets.presets.snapshot` – Capture live enablement and settings; match presets.
- :mod:`PluginPresets.presets.apply` – Apply presets with per-plugin failure isolation.
- :mod:`PluginPresets.presets.storage` – Presets directory and remote mirror persistence.
- :mod:`PluginPresets.presets.sharing` – Text export/import codec.
- :mod:`PluginPresets.presets.lib` – :class:`PresetsAPI`, the orchestrator.
"""
