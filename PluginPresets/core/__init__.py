"""
Core package for PluginPresets: the host-facing adapters and shared signals.

This package includes:

- :mod:`PluginPresets.core.config` – Configuration store adapters (:class:`ConfigStore`).
- :mod:`PluginPresets.core.plugins` – Plugin registry adapters (:class:`PluginRegistry`).
- :mod:`PluginPresets.core.signals` – Application-wide Qt signals.
"""
