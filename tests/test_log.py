# tests/test_log.py
"""
Tests for PluginPresets.log.log
(covers TankHandler, the Qt bridge, setup helpers and status exception logging).

Run:
    python -m unittest tests.test_log
"""
import logging
from typing import List

from PySide6.QtCore import QtMsgType

from PluginPresets.core.signals import signals
from PluginPresets.log.log import (
    TankHandler,
    preset_extra,
    qt_message_handler,
    setup_logging,
)
from PluginPresets.status import status
from tests.base import BaseTestCase


class LogModuleTests(BaseTestCase):
    """
    Each test starts with a fresh root logger configured by
    setup_logging(enable_stream_handler=False).
    """

    def setUp(self) -> None:
        super().setUp()

        logging.disable(logging.NOTSET)

        setup_logging(enable_stream_handler=False,
                      enable_qt_handler=False,
                      log_level=logging.DEBUG)

        self.root_logger = logging.getLogger()
        self.tank: TankHandler = next(
            h for h in self.root_logger.handlers if isinstance(h, TankHandler)
        )

    def test_setup_logging_installs_tank_handler_only(self):
        self.assertEqual(
            [type(h) for h in self.root_logger.handlers],
            [TankHandler],
        )

    def test_setup_logging_replaces_handlers(self):
        setup_logging(enable_stream_handler=True, enable_qt_handler=False)
        types = [type(h) for h in self.root_logger.handlers]
        self.assertEqual(types.count(TankHandler), 1)
        self.assertEqual(len(types), 2)

    def test_tank_handler_stores_and_filters(self):
        logging.debug('dbg message')
        logging.error('err message')
        self.assertEqual(len(self.tank.tank), 2)
        errs: List[str] = self.tank.get_logs(logging.ERROR)
        self.assertEqual(len(errs), 1)
        self.assertIn('err message', errs[0])
        self.tank.clear_logs()
        self.assertEqual(len(self.tank.tank), 0)

    def test_emit_triggers_showLogs_on_error(self):
        triggered: list[bool] = []

        def _slot() -> None:
            triggered.append(True)

        signals.showLogs.connect(_slot)
        try:
            logging.warning('only a warning')
            self.assertFalse(triggered)
            logging.error('should emit signal')
            self.assertTrue(triggered)
        finally:
            signals.showLogs.disconnect(_slot)

    def test_tank_filters_by_preset(self):
        logging.warning('about combat', extra=preset_extra('Combat'))
        logging.warning('about skilling', extra=preset_extra('Skilling'))
        logging.warning('untagged')

        combat = self.tank.get_logs(preset='Combat')
        self.assertEqual(len(combat), 1)
        self.assertIn('about combat', combat[0])
        self.assertEqual(len(self.tank.get_logs(logging.WARNING)), 3)
        self.assertEqual(self.tank.get_logs(logging.ERROR, preset='Combat'), [])

    def test_qt_message_handler_maps_to_logging(self):
        qt_message_handler(QtMsgType.QtInfoMsg, None, 'Qt info')
        qt_message_handler(QtMsgType.QtWarningMsg, None, 'Qt warn\n')
        qt_message_handler(QtMsgType.QtCriticalMsg, None, 'Qt critical')
        msgs = self.tank.get_logs()
        self.assertTrue(any('Qt info' in m for m in msgs))
        self.assertTrue(any(m.endswith('Qt warn') for m in msgs))
        self.assertTrue(any('Qt critical' in m for m in self.tank.get_logs(logging.ERROR)))

    def test_qt_message_handler_fatal_exits(self):
        with self.assertRaises(SystemExit):
            qt_message_handler(QtMsgType.QtFatalMsg, None, 'fatal')

    def test_status_exceptions_are_logged(self):
        errors: list[str] = []

        def _slot(message: str) -> None:
            errors.append(message)

        signals.error.connect(_slot)
        try:
            status.PresetDecodeException('truncated')
            status.PluginStartFailedException('"Boosts"')
        finally:
            signals.error.disconnect(_slot)

        self.assertEqual(errors, ['truncated'])
        errs = self.tank.get_logs(logging.ERROR)
        self.assertTrue(any('truncated' in m for m in errs))
        warnings = self.tank.get_logs(logging.WARNING)
        self.assertTrue(any('"Boosts"' in m for m in warnings))

    def test_failed_apply_is_visible_in_tank(self):
        from PluginPresets.presets.apply import ApplyEngine
        from PluginPresets.presets.model import Preset

        def hook():
            raise RuntimeError('boom')

        self.plugin_registry.start_hooks['Boosts'] = hook
        self.plugin_registry.set_enabled('Boosts', False)
        ApplyEngine(self.config_store, self.plugin_registry).apply(
            Preset(id=1, name='A', enabled_plugins={'Boosts': True}))

        warnings = self.tank.get_logs(logging.WARNING, preset='A')
        self.assertTrue(any('boom' in m for m in warnings))
