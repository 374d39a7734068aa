"""
Test StatePersistence - whole-store load / save / seed / reset
"""

import json

import pytest

from clinic_backend.core.record_store import RecordStore
from clinic_backend.core.workflow_actions import ClinicActions
from clinic_backend.persistence import (
    FileKeyValueStore,
    InMemoryKeyValueStore,
    LoadOutcome,
    STORAGE_KEY,
    StatePersistence,
)


@pytest.fixture
def kv_store():
    return InMemoryKeyValueStore()


@pytest.fixture
def persistence(kv_store):
    return StatePersistence(kv_store)


def stored_blob(kv_store):
    return json.loads(kv_store.get(STORAGE_KEY))


class TestLoad:
    """load() restores or seeds"""

    def test_empty_store_seeds_sample_patient(self, kv_store, persistence):
        store = RecordStore()

        outcome = persistence.load(store)

        assert outcome == LoadOutcome.SEEDED_EMPTY
        assert store.list_patient_ids() == ['P001']
        sample = store.get_patient('P001')
        assert sample['profile']['name'] == 'John Doe'
        assert sample['profile']['age'] == 35
        assert sample['payment']['status'] == 'pending'
        assert sample['consent']['status'] is False
        assert sample['treatmentPlan']['status'] == 'not_created'
        assert sample['sessions'] == []
        assert sample['notes'] == []
        # Seed is persisted immediately
        assert list(stored_blob(kv_store)['patients']) == ['P001']

    def test_corrupt_blob_falls_back_to_seed(self, kv_store, persistence):
        kv_store.set(STORAGE_KEY, "{not json")
        store = RecordStore()

        outcome = persistence.load(store)

        assert outcome == LoadOutcome.SEEDED_CORRUPT
        assert store.list_patient_ids() == ['P001']
        assert list(stored_blob(kv_store)['patients']) == ['P001']

    def test_non_object_blob_is_treated_as_corrupt(self, kv_store, persistence):
        kv_store.set(STORAGE_KEY, "[1, 2, 3]")
        store = RecordStore()

        assert persistence.load(store) == LoadOutcome.SEEDED_CORRUPT
        assert store.list_patient_ids() == ['P001']

    @pytest.mark.parametrize("blob", [
        {'patients': None},
        {'patients': []},
        {'app': []},
        {'ui': 'modal'},
        {'patients': {'P001': None}},
    ])
    def test_wrongly_typed_section_is_treated_as_corrupt(self, kv_store, persistence, blob):
        kv_store.set(STORAGE_KEY, json.dumps(blob))
        store = RecordStore()

        outcome = persistence.load(store)

        assert outcome == LoadOutcome.SEEDED_CORRUPT
        assert store.list_patient_ids() == ['P001']
        # The reseeded store is usable
        actions = ClinicActions(store, persistence)
        assert actions.select_role('doctor')
        assert actions.create_patient({'name': 'Jane'}).patient_id == 'P002'

    def test_undecodable_file_is_treated_as_corrupt(self, tmp_path):
        base = tmp_path / "state"
        kv = FileKeyValueStore(str(base))
        (base / f"{STORAGE_KEY}.json").write_bytes(b'\xff\xfe{}')
        store = RecordStore()

        outcome = StatePersistence(kv).load(store)

        assert outcome == LoadOutcome.SEEDED_CORRUPT
        assert store.list_patient_ids() == ['P001']
        assert json.loads(kv.get(STORAGE_KEY))['patients']['P001']['profile']['name'] == 'John Doe'

    def test_has_saved_state(self, kv_store, persistence):
        assert not persistence.has_saved_state()

        persistence.load(RecordStore())

        assert persistence.has_saved_state()

    def test_partial_blob_keeps_defaults(self, kv_store, persistence):
        """Fields missing from the blob keep their in-memory default"""
        kv_store.set(STORAGE_KEY, json.dumps({'app': {
            'currentRole': 'doctor',
            'currentScreen': 'dashboard',
            'selectedPatientId': None,
        }}))
        store = RecordStore()

        outcome = persistence.load(store)

        assert outcome == LoadOutcome.RESTORED
        assert store.get_app_focus()['currentRole'] == 'doctor'
        assert store.patient_count() == 0
        assert store.get_ui_state()['modal'] is None


class TestRoundTrip:

    def test_save_then_load_reproduces_state(self, kv_store, persistence):
        """Patient mapping and app focus survive a round trip field for field"""
        store = RecordStore()
        persistence.load(store)
        actions = ClinicActions(store, persistence)

        pid = actions.create_patient({'name': 'Jane', 'age': 40}).patient_id
        actions.toggle_consent(pid)
        actions.toggle_payment(pid)
        actions.update_assessment(pid, 'prs', {'score': 30, 'completedBy': 'X'})
        actions.create_treatment_plan(pid, {'disease': 'anxiety', 'device': 'TPS', 'sessionsPlanned': 8})
        actions.add_session(pid, {'device': 'TPS', 'duration': 30})
        actions.add_note(pid, 'Doctor', 'Follow up in a week')
        actions.select_role('doctor')
        actions.select_patient(pid)

        restored = RecordStore()
        outcome = StatePersistence(kv_store).load(restored)

        assert outcome == LoadOutcome.RESTORED
        assert restored.snapshot_state() == store.snapshot_state()
        assert restored.get_app_focus() == {
            'currentRole': 'doctor',
            'currentScreen': 'patientDetails',
            'selectedPatientId': pid,
        }

    def test_restored_store_continues_id_sequence(self, kv_store, persistence):
        """A new actions object never reuses an id already in the store"""
        store = RecordStore()
        persistence.load(store)
        actions = ClinicActions(store, persistence)
        actions.create_patient({'name': 'A'})
        actions.create_patient({'name': 'B'})

        restored = RecordStore()
        persistence.load(restored)
        result = ClinicActions(restored, persistence).create_patient({'name': 'C'})

        assert result.patient_id == 'P004'


class TestReset:

    def test_reset_reseeds(self, kv_store, persistence):
        store = RecordStore()
        persistence.load(store)
        actions = ClinicActions(store, persistence)
        actions.create_patient({'name': 'Jane'})
        actions.select_role('doctor')

        persistence.reset(store)

        assert store.list_patient_ids() == ['P001']
        assert store.get_app_focus() == {
            'currentRole': None,
            'currentScreen': 'dashboard',
            'selectedPatientId': None,
        }
        assert list(stored_blob(kv_store)['patients']) == ['P001']

    def test_reset_twice_equals_reset_once(self, persistence):
        store = RecordStore()
        persistence.load(store)
        ClinicActions(store, persistence).create_patient({'name': 'Jane'})

        persistence.reset(store)
        once = store.snapshot_state()
        persistence.reset(store)
        twice = store.snapshot_state()

        assert once['app'] == twice['app']
        assert list(once['patients']) == list(twice['patients']) == ['P001']

        def strip_times(record):
            record['profile'].pop('createdAt')
            record['profile'].pop('visitDate')
            return record

        assert strip_times(once['patients']['P001']) == strip_times(twice['patients']['P001'])


class TestFileKeyValueStore:

    def test_file_store_round_trip(self, tmp_path):
        kv = FileKeyValueStore(str(tmp_path / "state"))

        assert kv.get(STORAGE_KEY) is None
        kv.set(STORAGE_KEY, '{"a": 1}')
        assert kv.contains(STORAGE_KEY)
        assert kv.get(STORAGE_KEY) == '{"a": 1}'
        assert (tmp_path / "state" / f"{STORAGE_KEY}.json").exists()

        kv.delete(STORAGE_KEY)
        assert not kv.contains(STORAGE_KEY)
        kv.delete(STORAGE_KEY)  # deleting a missing key is a no-op

    def test_persistence_over_files(self, tmp_path):
        base = str(tmp_path / "state")
        store = RecordStore()
        persistence = StatePersistence(FileKeyValueStore(base))
        persistence.load(store)
        ClinicActions(store, persistence).create_patient({'name': 'Jane', 'age': 40})

        restored = RecordStore()
        outcome = StatePersistence(FileKeyValueStore(base)).load(restored)

        assert outcome == LoadOutcome.RESTORED
        assert restored.list_patient_ids() == ['P001', 'P002']
        assert restored.get_patient('P002')['profile']['name'] == 'Jane'
