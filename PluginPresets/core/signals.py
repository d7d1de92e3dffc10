"""Application-wide Qt signals for PluginPresets.

Views and host wiring connect to :data:`signals` instead of reaching into
:class:`PluginPresets.presets.lib.PresetsAPI` instances directly.
"""
from PySide6 import QtCore


class Signals(QtCore.QObject):
    """Centralized Qt signals for preset, plugin and log events."""
    presetsChanged = QtCore.Signal()
    presetAboutToBeActivated = QtCore.Signal()
    presetActivated = QtCore.Signal()
    presetSelectionChanged = QtCore.Signal()
    presetDrifted = QtCore.Signal()

    pluginsChanged = QtCore.Signal()

    showLogs = QtCore.Signal()

    error = QtCore.Signal(str)

    def __init__(self):
        super().__init__()


signals = Signals()
