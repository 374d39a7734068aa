"""
Whole-store persistence.

One JSON blob under one fixed key in a key-value store. Every mutating
action rewrites the whole blob; there are no partial writes and no
schema versioning.
"""

import json
import logging
from enum import Enum
from pathlib import Path
from typing import Dict, Optional

from clinic_backend.core.record_store import SNAPSHOT_KEYS, RecordStore, new_patient_record

logger = logging.getLogger(__name__)


STORAGE_KEY = "sozoDemoState_v2"
DEFAULT_STORAGE_DIR = "outputs/state"

SEED_PATIENT_ID = "P001"


class LoadOutcome(str, Enum):
    """
    What load() did.

    RESTORED: blob found, parsed and merged
    SEEDED_EMPTY: no blob, sample record seeded
    SEEDED_CORRUPT: blob unparsable or malformed, discarded and sample record seeded
    """
    RESTORED = "restored"
    SEEDED_EMPTY = "seeded_empty"
    SEEDED_CORRUPT = "seeded_corrupt"


class InMemoryKeyValueStore:
    """Dict-backed key-value store (tests, ephemeral runs)"""

    def __init__(self):
        self._items: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set(self, key: str, value: str) -> None:
        self._items[key] = value

    def delete(self, key: str) -> None:
        self._items.pop(key, None)

    def contains(self, key: str) -> bool:
        return key in self._items


class FileKeyValueStore:
    """
    One file per key under a base directory.

    Layout:
        outputs/state/
            sozoDemoState_v2.json

    Design:
    - Overwrite in place (last write wins)
    - Single writer assumed; no locking
    - Write errors (disk full, permissions) propagate to the caller
    """

    def __init__(self, base_dir: str = DEFAULT_STORAGE_DIR):
        """
        Initialize file-backed store.

        Args:
            base_dir: Directory holding one file per key
        """
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"FileKeyValueStore initialized: {self.base_dir}")

    def _path(self, key: str) -> Path:
        return self.base_dir / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        with open(path, 'r', encoding='utf-8') as f:
            return f.read()

    def set(self, key: str, value: str) -> None:
        with open(self._path(key), 'w', encoding='utf-8') as f:
            f.write(value)

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    def contains(self, key: str) -> bool:
        return self._path(key).exists()


class StatePersistence:
    """
    Serializes the entire Record Store to/from one key.

    Stored layout:
        {
            "app": {...},        # AppFocus
            "patients": {...},   # id -> PatientRecord
            "ui": {...}          # presentation scratch
        }
    """

    def __init__(self, kv_store=None, storage_key: str = STORAGE_KEY):
        """
        Initialize persistence layer.

        Args:
            kv_store: Object with get/set/delete/contains. Defaults to a
                FileKeyValueStore under DEFAULT_STORAGE_DIR.
            storage_key: Fixed key the blob lives under
        """
        self.kv_store = kv_store if kv_store is not None else FileKeyValueStore()
        self.storage_key = storage_key
        logger.info(f"StatePersistence initialized (key={storage_key})")

    def load(self, store: RecordStore) -> LoadOutcome:
        """
        Restore store from the persisted blob, or seed it.

        A parse failure is non-fatal: undecodable bytes, invalid JSON and
        wrongly-typed sections are all treated exactly like "no data present".

        Args:
            store: Live Record Store to populate

        Returns:
            LoadOutcome
        """
        try:
            # UnicodeDecodeError and json.JSONDecodeError both subclass ValueError
            raw = self.kv_store.get(self.storage_key)
            if raw is None:
                saved = None
            else:
                saved = self._parse_snapshot(raw)
        except ValueError as e:
            logger.warning(f"Failed to load state, reseeding: {e}")
            self.seed(store)
            self.save(store)
            return LoadOutcome.SEEDED_CORRUPT

        if saved is None:
            logger.info("No persisted state found - seeding sample data")
            self.seed(store)
            self.save(store)
            return LoadOutcome.SEEDED_EMPTY

        store._merge_snapshot(saved)
        logger.info(f"Restored state: {store.patient_count()} patient(s)")
        return LoadOutcome.RESTORED

    @staticmethod
    def _parse_snapshot(raw: str) -> Dict:
        """
        Decode a persisted blob.

        Raises:
            ValueError: If the blob is not a JSON object, or a present
                app / patients / ui section (or a patient record) is not an object
        """
        saved = json.loads(raw)
        if not isinstance(saved, dict):
            raise ValueError(f"expected JSON object, got {type(saved).__name__}")

        for key in SNAPSHOT_KEYS:
            if key in saved and not isinstance(saved[key], dict):
                raise ValueError(f"'{key}' must be an object, got {type(saved[key]).__name__}")

        for patient_id, record in saved.get('patients', {}).items():
            if not isinstance(record, dict):
                raise ValueError(f"patient {patient_id} must be an object, got {type(record).__name__}")

        return saved

    def save(self, store: RecordStore) -> None:
        """
        Write the whole store under the fixed key.

        Unconditional and synchronous; no debouncing, no diffing.
        """
        self.kv_store.set(self.storage_key, json.dumps(store.snapshot_state(), ensure_ascii=False))
        logger.debug(f"Saved state ({store.patient_count()} patient(s))")

    def seed(self, store: RecordStore) -> None:
        """
        Install exactly one sample record as the entire patient mapping.

        Does not persist; callers follow with save().
        """
        sample = new_patient_record(SEED_PATIENT_ID, 'John Doe', 35, 'M')
        store._install_patients({SEED_PATIENT_ID: sample})
        logger.info(f"Seeded sample patient {SEED_PATIENT_ID}")

    def reset(self, store: RecordStore) -> None:
        """
        Delete the blob, clear the store, reseed and persist.

        Warning: This erases all data. Use with caution.
        """
        self.kv_store.delete(self.storage_key)
        store._clear()
        self.seed(store)
        self.save(store)
        logger.info("State reset to sample data")

    def has_saved_state(self) -> bool:
        return self.kv_store.contains(self.storage_key)
