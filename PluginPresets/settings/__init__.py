"""
Settings package: paths, ignore rules and naming rules.

This package provides:

- :mod:`PluginPresets.settings.lib` – :class:`ConfigPaths`, :class:`IgnoreRules` and preset name helpers.
"""
