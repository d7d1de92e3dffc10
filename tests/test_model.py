# tests/test_model.py
"""
Unit-tests for PluginPresets.presets.model

Run with:
    python -m unittest tests.test_model
"""
import unittest

from PluginPresets.presets.model import (
    Origin,
    Preset,
    SelectionState,
    new_preset_id,
)

RECORD = {
    'id': 1700000000000,
    'name': 'Combat',
    'local': True,
    'selected': None,
    'enabledPlugins': {'Boosts': True, 'Ground Items': False},
    'pluginSettings': {'boosts': {'showIcons': 'true', 'boostThreshold': None}},
    'keybind': 'ctrl+1',
}


class PresetRecordTests(unittest.TestCase):

    def test_from_dict_reads_all_fields(self):
        preset = Preset.from_dict(RECORD)
        self.assertEqual(preset.id, RECORD['id'])
        self.assertEqual(preset.name, 'Combat')
        self.assertIs(preset.local, Origin.LocalOnly)
        self.assertIs(preset.selected, SelectionState.Unset)
        self.assertEqual(preset.enabled_plugins, {'Boosts': True, 'Ground Items': False})
        self.assertIsNone(preset.plugin_settings['boosts']['boostThreshold'])
        self.assertEqual(preset.keybind, 'ctrl+1')

    def test_to_dict_restores_record(self):
        self.assertEqual(Preset.from_dict(RECORD).to_dict(), RECORD)

    def test_tristate_values_map_to_enums(self):
        for value, state, origin in (
                (True, SelectionState.Active, Origin.LocalOnly),
                (False, SelectionState.Stale, Origin.Synced),
                (None, SelectionState.Unset, Origin.Unclassified),
        ):
            preset = Preset.from_dict({**RECORD, 'selected': value, 'local': value})
            self.assertIs(preset.selected, state)
            self.assertIs(preset.local, origin)

    def test_missing_optional_fields_default(self):
        record = {'id': 1, 'name': 'Old', 'enabledPlugins': {}}
        preset = Preset.from_dict(record)
        self.assertIs(preset.selected, SelectionState.Unset)
        self.assertIs(preset.local, Origin.Unclassified)
        self.assertEqual(preset.plugin_settings, {})
        self.assertIsNone(preset.keybind)

    def test_unknown_fields_are_ignored(self):
        preset = Preset.from_dict({**RECORD, 'colour': '#ff0000', 'future': [1, 2]})
        self.assertEqual(preset.name, 'Combat')

    def test_malformed_records_raise(self):
        bad = [
            [],
            {**RECORD, 'id': 'x'},
            {**RECORD, 'id': True},
            {**RECORD, 'name': ''},
            {k: v for k, v in RECORD.items() if k != 'enabledPlugins'},
            {**RECORD, 'enabledPlugins': {'Boosts': 'yes'}},
            {**RECORD, 'pluginSettings': {'boosts': {'showIcons': 1}}},
            {**RECORD, 'selected': 'true'},
            {**RECORD, 'keybind': 5},
        ]
        for record in bad:
            with self.assertRaises(ValueError, msg=repr(record)):
                Preset.from_dict(record)

    def test_to_dict_copies_maps(self):
        preset = Preset.from_dict(RECORD)
        data = preset.to_dict()
        data['enabledPlugins']['Boosts'] = False
        data['pluginSettings']['boosts']['showIcons'] = 'false'
        self.assertTrue(preset.enabled_plugins['Boosts'])
        self.assertEqual(preset.plugin_settings['boosts']['showIcons'], 'true')

    def test_empty_string_is_distinct_from_none(self):
        preset = Preset.from_dict({**RECORD, 'pluginSettings': {'g': {'a': '', 'b': None}}})
        self.assertEqual(preset.plugin_settings['g']['a'], '')
        self.assertIsNone(preset.plugin_settings['g']['b'])

    def test_state_properties(self):
        preset = Preset(id=1, name='A')
        self.assertFalse(preset.is_selected)
        self.assertTrue(preset.is_local)
        preset.selected = SelectionState.Stale
        preset.local = Origin.Synced
        self.assertTrue(preset.is_stale)
        self.assertFalse(preset.is_local)


class PresetIdTests(unittest.TestCase):

    def test_new_id_skips_taken(self):
        first = new_preset_id()
        taken = set(range(first, first + 50))
        self.assertNotIn(new_preset_id(taken), taken)

    def test_new_id_is_millisecond_timestamp(self):
        self.assertGreater(new_preset_id(), 1_600_000_000_000)


if __name__ == '__main__':
    unittest.main()
