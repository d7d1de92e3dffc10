"""Text codec for sharing a single preset.

Exported text is ``PP<version>:`` followed by url-safe base64 of a zlib compressed
JSON record. The record carries its own ``version`` so newer fields can be added;
decoding ignores anything it does not know and defaults anything missing.

Version 1 shares were the plain JSON record and are still accepted.
"""
import base64
import binascii
import json
import re
import zlib
from typing import Any, Dict, Iterable

from ..settings.lib import sanitize_preset_name
from ..status import status
from .model import Origin, Preset, SelectionState, new_preset_id

FORMAT_VERSION = 2
FORMAT_TAG = 'PP'

_TAGGED = re.compile(rf'^{FORMAT_TAG}(\d+):(.*)$', re.DOTALL)


def encode(preset: Preset) -> str:
    """Return copy-paste safe text for a preset.

    Selection, storage origin and keybind are device state and are not exported.
    """
    record = {
        'version': FORMAT_VERSION,
        'id': preset.id,
        'name': preset.name,
        'enabledPlugins': dict(preset.enabled_plugins),
        'pluginSettings': {g: dict(v) for g, v in preset.plugin_settings.items()},
    }
    raw = json.dumps(record, separators=(',', ':'), ensure_ascii=False).encode('utf-8')
    payload = base64.urlsafe_b64encode(zlib.compress(raw, 9)).decode('ascii')
    return f'{FORMAT_TAG}{FORMAT_VERSION}:{payload}'


def _b64decode(payload: str) -> bytes:
    payload = ''.join(payload.split())
    payload += '=' * (-len(payload) % 4)
    try:
        return base64.b64decode(payload, altchars=b'-_', validate=True)
    except (binascii.Error, ValueError) as ex:
        raise status.PresetDecodeException(f'Invalid characters: {ex}') from ex


def _unpack(payload: str) -> Dict[str, Any]:
    try:
        raw = zlib.decompress(_b64decode(payload))
    except zlib.error as ex:
        raise status.PresetDecodeException(f'Corrupt data: {ex}') from ex
    return _loads(raw)


def _loads(raw) -> Dict[str, Any]:
    try:
        record = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as ex:
        raise status.PresetDecodeException(f'Malformed record: {ex}') from ex
    if not isinstance(record, dict):
        raise status.PresetDecodeException('Malformed record: not an object')
    return record


def decode(text: str, taken_ids: Iterable[int] = ()) -> Preset:
    """Decode shared text into a new preset.

    The preset gets a fresh id (not in ``taken_ids``), a Stale selection state and an
    Unclassified origin.

    Raises:
        status.PresetDecodeException: If the text cannot be decoded into a valid preset.
    """
    if not isinstance(text, str) or not text.strip():
        raise status.PresetDecodeException('Nothing to import')
    text = text.strip()

    match = _TAGGED.match(text)
    if match:
        record = _unpack(match.group(2))
    elif text.startswith('{'):
        record = _loads(text)
    else:
        record = _unpack(text)

    # Shares never carry trustworthy identity or device state
    record = dict(record)
    record['id'] = new_preset_id(taken_ids)
    record['name'] = sanitize_preset_name(record['name']) if isinstance(record.get('name'), str) else None
    record.pop('selected', None)
    record.pop('local', None)
    record.pop('keybind', None)

    try:
        preset = Preset.from_dict(record)
    except ValueError as ex:
        raise status.PresetDecodeException(f'Malformed record: {ex}') from ex

    preset.selected = SelectionState.Stale
    preset.local = Origin.Unclassified
    return preset
