# tests/test_apply.py
"""
Unit-tests for PluginPresets.presets.apply

Run with:
    python -m unittest tests.test_apply
"""
from PluginPresets.presets.apply import ApplyEngine, ReentrancyGuard
from PluginPresets.presets.model import Preset
from PluginPresets.presets.snapshot import SnapshotEngine
from PluginPresets.status import status
from tests.base import BaseTestCase


def _raise(ex):
    def hook():
        raise ex
    return hook


class ApplyEngineTests(BaseTestCase):

    def setUp(self) -> None:
        super().setUp()
        self.guard = ReentrancyGuard()
        self.engine = ApplyEngine(self.config_store, self.plugin_registry, guard=self.guard)
        self.snapshot = SnapshotEngine(self.config_store, self.plugin_registry)

    def test_apply_restores_enablement_and_settings(self):
        preset = self.snapshot.capture_into(Preset(id=1, name='Combat'))

        self.plugin_registry.set_enabled('Boosts', False)
        self.plugin_registry.set_enabled('Ground Items', True)
        self.config_store.set_value('boosts', 'showIcons', 'false')

        report = self.engine.apply(preset)

        self.assertTrue(report.ok)
        self.assertTrue(self.plugin_registry.is_enabled('Boosts'))
        self.assertFalse(self.plugin_registry.is_enabled('Ground Items'))
        self.assertTrue(self.plugin_registry.running['Boosts'])
        self.assertFalse(self.plugin_registry.running['Ground Items'])
        self.assertEqual(self.config_store.get_value('boosts', 'showIcons'), 'true')

        live = self.snapshot.capture_enabled_plugins()
        for name, enabled in preset.enabled_plugins.items():
            self.assertEqual(live[name], enabled)

    def test_null_values_are_not_written(self):
        preset = Preset(id=1, name='A', plugin_settings={'boosts': {'boostThreshold': None, 'showIcons': 'false'}})
        report = self.engine.apply(preset)
        self.assertEqual(report.settings_written, 1)
        self.assertIsNone(self.config_store.get_value('boosts', 'boostThreshold'))
        self.assertEqual(self.config_store.get_value('boosts', 'showIcons'), 'false')

    def test_ignored_groups_and_keys_are_not_written(self):
        preset = Preset(id=1, name='A', plugin_settings={
            'twitch': {'channel': 'x'},
            'grounditems': {'accountToken': 'stolen', 'hiddenItems': 'Bones'},
        })
        self.engine.apply(preset)
        self.assertIsNone(self.config_store.get_value('twitch', 'channel'))
        self.assertEqual(self.config_store.get_value('grounditems', 'accountToken'), 'secret')
        self.assertEqual(self.config_store.get_value('grounditems', 'hiddenItems'), 'Bones')

    def test_plugins_unknown_to_preset_are_left_alone(self):
        preset = Preset(id=1, name='A', enabled_plugins={'Boosts': False})
        report = self.engine.apply(preset)

        self.assertFalse(self.plugin_registry.is_enabled('Boosts'))
        self.assertTrue(self.plugin_registry.is_enabled('Cosmetic'))
        self.assertIn('Cosmetic', report.ignored)
        self.assertIn('Ground Items', report.ignored)
        self.assertNotIn('Twitch', report.ignored)

    def test_missing_plugins_are_reported_not_raised(self):
        preset = Preset(id=1, name='A', enabled_plugins={
            'Boosts': False,
            'Not Installed': True,
            'Ground Items': True,
        })
        report = self.engine.apply(preset)

        self.assertEqual(report.missing, ['Not Installed'])
        self.assertFalse(self.plugin_registry.is_enabled('Boosts'))
        self.assertTrue(self.plugin_registry.is_enabled('Ground Items'))

    def test_start_failure_does_not_abort_batch(self):
        self.plugin_registry.start_hooks['Boosts'] = _raise(RuntimeError('no native library'))
        self.plugin_registry.set_enabled('Boosts', False)
        self.plugin_registry.set_enabled('Cosmetic', False)

        preset = Preset(id=1, name='A', enabled_plugins={'Boosts': True, 'Cosmetic': True, 'Empty': False})
        report = self.engine.apply(preset)

        self.assertFalse(report.ok)
        self.assertEqual([r.name for r in report.failures], ['Boosts'])
        self.assertIsInstance(report.failures[0].error, status.PluginStartFailedException)
        self.assertTrue(self.plugin_registry.is_enabled('Cosmetic'))
        self.assertTrue(self.plugin_registry.running['Cosmetic'])
        self.assertFalse(self.plugin_registry.running['Empty'])

    def test_every_failure_is_collected(self):
        self.plugin_registry.start_hooks['Boosts'] = _raise(RuntimeError('a'))
        self.plugin_registry.stop_hooks['Cosmetic'] = _raise(RuntimeError('b'))
        preset = Preset(id=1, name='A', enabled_plugins={'Boosts': True, 'Cosmetic': False})
        report = self.engine.apply(preset)

        self.assertEqual({r.name for r in report.failures}, {'Boosts', 'Cosmetic'})
        self.assertIsInstance(
            next(r for r in report.failures if r.name == 'Cosmetic').error,
            status.PluginStopFailedException,
        )

    def test_setting_failure_is_isolated(self):
        preset = Preset(id=1, name='A', plugin_settings={'boosts': {'showIcons': 1, 'notifyBefore': '5'}})
        report = self.engine.apply(preset)
        self.assertEqual(len(report.settings_failed), 1)
        self.assertEqual(self.config_store.get_value('boosts', 'notifyBefore'), '5')

    def test_guard_is_held_during_apply_and_released_after(self):
        seen = []
        self.config_store.configChanged.connect(lambda g, k: seen.append(self.guard.active))
        self.plugin_registry.pluginToggled.connect(lambda n, e: seen.append(self.guard.active))

        preset = Preset(id=1, name='A', enabled_plugins={'Boosts': False},
                        plugin_settings={'boosts': {'showIcons': 'false'}})
        self.engine.apply(preset)

        self.assertTrue(seen)
        self.assertTrue(all(seen))
        self.assertFalse(self.guard.active)

    def test_guard_released_on_unexpected_error(self):
        class Broken(Exception):
            pass

        def list_plugins():
            raise Broken()

        self.plugin_registry.list_plugins = list_plugins
        with self.assertRaises(Broken):
            self.engine.apply(Preset(id=1, name='A'))
        self.assertFalse(self.guard.active)
