"""Persistence of the preset collection.

Local presets are written one file per preset, ``<presets_dir>/<id>.json``, each
holding a JSON array with the preset's record. Synced presets are stored as a single
JSON array in the host configuration (the remote mirror), which the host carries
across devices.

Disk writes run on a single-threaded write lane so callers never wait on I/O and two
writes never interleave. Loading drains the lane first.
"""
import json
import logging
import pathlib
from typing import Any, Dict, Iterable, List, Optional

from PySide6 import QtCore

from ..core.config import ConfigStore
from ..settings.lib import MIRROR_GROUP, MIRROR_KEY
from ..status import status
from .model import Origin, Preset

PRESET_FORMAT = 'json'


def _read_records(path: pathlib.Path) -> List[Dict[str, Any]]:
    with path.open('r', encoding='utf-8') as f:
        data = json.load(f)
    if isinstance(data, dict):
        return [data]
    if isinstance(data, list):
        return data
    raise ValueError(f'Unexpected JSON root in {path}')


def _parse_records(records: Iterable[Any], source: str) -> List[Preset]:
    presets = []
    for record in records:
        try:
            presets.append(Preset.from_dict(record))
        except ValueError as ex:
            logging.warning(f'Skipped invalid preset record in {source}: {ex}')
    return presets


class _WriteTask(QtCore.QRunnable):
    """Write serialized local presets and delete files of presets no longer local."""

    def __init__(self, storage: 'PresetStorage', records: List[Dict[str, Any]]) -> None:
        super().__init__()
        self.storage = storage
        self.records = records

    def run(self) -> None:
        presets_dir = self.storage.presets_dir
        failed = []
        try:
            presets_dir.mkdir(parents=True, exist_ok=True)
        except OSError as ex:
            self.storage.report_write_failure(f'{presets_dir}: {ex}')
            return

        keep = set()
        for record in self.records:
            path = presets_dir / f'{record["id"]}.{PRESET_FORMAT}'
            keep.add(path.name)
            tmp_path = path.with_name(path.name + '.tmp')
            try:
                with tmp_path.open('w', encoding='utf-8') as f:
                    json.dump([record], f, indent=4, ensure_ascii=False)
                tmp_path.replace(path)
            except OSError as ex:
                failed.append(f'{path.name}: {ex}')

        for path in presets_dir.glob(f'*.{PRESET_FORMAT}'):
            if path.name in keep:
                continue
            try:
                path.unlink()
                logging.debug(f'Removed preset file {path}')
            except OSError as ex:
                failed.append(f'{path.name}: {ex}')

        if failed:
            self.storage.report_write_failure('; '.join(failed))
        else:
            logging.debug(f'Saved {len(self.records)} local presets to {presets_dir}')


class PresetStorage(QtCore.QObject):
    """Load and save presets to the presets directory and the remote mirror.

    Every save and load is a full copy; no references into the caller's presets are
    kept.

    Signals:
        writeFailed (str): Emitted when a save could not be completed.
    """
    writeFailed = QtCore.Signal(str)

    def __init__(self, config_store: ConfigStore, presets_dir: pathlib.Path,
                 parent: Optional[QtCore.QObject] = None) -> None:
        super().__init__(parent)
        self.config_store = config_store
        self.presets_dir = pathlib.Path(presets_dir)

        self._lane = QtCore.QThreadPool(self)
        self._lane.setMaxThreadCount(1)

    def report_write_failure(self, message: str) -> None:
        ex = status.StorageWriteFailedException(message)
        self.writeFailed.emit(str(ex))

    def wait(self, msecs: int = -1) -> bool:
        """Block until queued writes are done. Returns False on timeout."""
        return self._lane.waitForDone(msecs)

    def load(self) -> List[Preset]:
        """Load local and mirrored presets.

        Local files are read first; mirror records whose id was already loaded are
        dropped. Unreadable files and records are skipped.
        """
        self.wait()
        presets = self.load_local()
        seen = {p.id for p in presets}
        for preset in self.load_remote():
            if preset.id in seen:
                logging.debug(f'Mirror preset {preset.id} shadowed by local copy')
                continue
            seen.add(preset.id)
            presets.append(preset)
        return presets

    def load_local(self) -> List[Preset]:
        if not self.presets_dir.exists():
            return []

        presets = []
        seen = set()
        for path in sorted(self.presets_dir.glob(f'*.{PRESET_FORMAT}')):
            try:
                records = _read_records(path)
            except (OSError, ValueError) as ex:
                logging.warning(f'Failed to read preset file {path}: {ex}')
                continue
            for preset in _parse_records(records, str(path)):
                if preset.id in seen:
                    logging.warning(f'Skipped duplicate preset id {preset.id} in {path}')
                    continue
                seen.add(preset.id)
                if preset.local is Origin.Synced:
                    # Left behind by an interrupted save
                    preset.local = Origin.LocalOnly
                presets.append(preset)
        return presets

    def load_remote(self) -> List[Preset]:
        raw = self.config_store.get_value(MIRROR_GROUP, MIRROR_KEY)
        if not raw:
            return []
        try:
            records = json.loads(raw)
        except json.JSONDecodeError as ex:
            logging.warning(f'Ignoring malformed preset mirror: {ex}')
            return []
        if not isinstance(records, list):
            logging.warning('Ignoring preset mirror: not a JSON array')
            return []

        presets = _parse_records(records, 'mirror')
        for preset in presets:
            preset.local = Origin.Synced
        return presets

    def save(self, presets: Iterable[Preset]) -> None:
        """Persist the given presets.

        The mirror is updated immediately; local files are written on the write lane.
        """
        local_records = []
        remote_records = []
        for preset in presets:
            record = preset.to_dict()
            if preset.local is Origin.Synced:
                remote_records.append(record)
            else:
                local_records.append(record)

        self.save_remote(remote_records)
        self.save_local(local_records)

    def save_local(self, records: List[Dict[str, Any]]) -> None:
        self._lane.start(_WriteTask(self, records))

    def save_remote(self, records: List[Dict[str, Any]]) -> None:
        try:
            if not records:
                self.config_store.unset(MIRROR_GROUP, MIRROR_KEY)
                return
            self.config_store.set_value(MIRROR_GROUP, MIRROR_KEY, json.dumps(records, ensure_ascii=False))
        except Exception as ex:
            self.report_write_failure(f'mirror: {ex}')

    def shutdown(self) -> None:
        """Finish pending writes and remove the presets directory if it is empty."""
        self.wait()
        try:
            if self.presets_dir.exists() and not any(self.presets_dir.iterdir()):
                self.presets_dir.rmdir()
                logging.debug(f'Removed empty presets directory {self.presets_dir}')
        except OSError as ex:
            logging.warning(f'Failed to remove {self.presets_dir}: {ex}')
