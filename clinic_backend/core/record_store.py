"""
Record Store - Canonical patient records and app focus

Responsibilities:
- Hold patient id -> PatientRecord mapping
- Hold AppFocus (current role, current screen, selected patient)
- Hold ui scratch state (presentation only, persisted but never interpreted)
- Minimal API - pure data storage, no workflow rules

Design principles:
- Records are JSON-shaped dicts (camelCase keys match the persisted blob)
- All public reads return deep copies
- No public setters. Mutation hooks are underscore-prefixed and used only by
  ClinicActions and StatePersistence
- No clinical validation (Record Store is a dumb container)

API Philosophy:
- Record Store = dumb data container
- ClinicActions = smart coordinator (preconditions, persistence)
- Role screens = read, call an action, re-read

CRITICAL: Session number vs list index
- sessionNumber is 1-indexed (user-facing): 1, 2, 3, ...
- Python lists are 0-indexed (storage): sessions[0], sessions[1], ...
- sessionNumber is derived at append time as len(sessions) + 1
"""

import copy
import logging
from typing import List, Dict, Any, Optional

from clinic_backend.utils.helpers import today_iso, utc_now_iso
from clinic_backend.utils.roles import AssessmentKind, PaymentStatus, PlanStatus

logger = logging.getLogger(__name__)


DEFAULT_SCREEN = "dashboard"
PATIENT_DETAILS_SCREEN = "patientDetails"

# Top-level keys of the persisted layout
SNAPSHOT_KEYS = ('app', 'patients', 'ui')


def default_app_focus() -> Dict[str, Any]:
    return {
        'currentRole': None,
        'currentScreen': DEFAULT_SCREEN,
        'selectedPatientId': None,
    }


def default_ui_state() -> Dict[str, Any]:
    return {
        'loading': False,
        'modal': None,
        'error': None,
    }


def empty_assessment_slot() -> Dict[str, Any]:
    return {'score': None, 'completedBy': None, 'completedAt': None}


def empty_treatment_plan() -> Dict[str, Any]:
    return {
        'id': None,
        'createdBy': None,
        'createdAt': None,
        'disease': None,
        'device': None,
        'montage': None,
        'sessionsPlanned': 0,
        'status': PlanStatus.NOT_CREATED.value,
    }


def new_patient_record(
    patient_id: str,
    name: str,
    age: int,
    gender: str,
    **extra_profile
) -> Dict[str, Any]:
    """
    Build a PatientRecord with every sub-object at its empty/default state.

    Args:
        patient_id: Unique id (e.g. 'P002')
        name: Display name
        age: Age in years
        gender: Free-text gender tag
        **extra_profile: Optional contact fields (phone, email, medicalHistory).
            None values are dropped.

    Returns:
        dict: Fresh PatientRecord

    Example:
        record = new_patient_record('P002', 'Jane', 40, 'F', phone='555-0101')
        # record['payment']['status'] == 'pending'
        # record['consent']['status'] is False
    """
    profile = {
        'id': patient_id,
        'name': name,
        'age': age,
        'gender': gender,
        'visitDate': today_iso(),
        'createdAt': utc_now_iso(),
    }
    profile.update({k: v for k, v in extra_profile.items() if v is not None})

    return {
        'profile': profile,
        'assessments': {kind.value: empty_assessment_slot() for kind in AssessmentKind},
        'payment': {
            'status': PaymentStatus.PENDING.value,
            'paymentDate': None,
        },
        'consent': {
            'status': False,
            'consentDate': None,
        },
        'treatmentPlan': empty_treatment_plan(),
        'sessions': [],
        'notes': [],
    }


class RecordStore:
    """Holds every patient record plus the app focus singleton"""

    def __init__(self):
        """
        Initialize an empty store.

        Callers normally follow with StatePersistence.load(store) to restore
        or seed state.
        """
        self._app: Dict[str, Any] = default_app_focus()
        self._patients: Dict[str, Dict[str, Any]] = {}
        self._ui: Dict[str, Any] = default_ui_state()

        logger.info("Record Store initialized")

    # ========================
    # Public Reads
    # ========================

    def has_patient(self, patient_id: str) -> bool:
        return patient_id in self._patients

    def get_patient(self, patient_id: str) -> Optional[Dict[str, Any]]:
        """
        Get patient record (deep copy).

        Args:
            patient_id: Patient to retrieve

        Returns:
            dict: PatientRecord (deep copy, safe to modify), or None if unknown
        """
        record = self._patients.get(patient_id)
        return copy.deepcopy(record) if record is not None else None

    def list_patients(self) -> List[Dict[str, Any]]:
        """
        Get all patient records in insertion order (deep copies).

        Returns:
            list: PatientRecords
        """
        return [copy.deepcopy(record) for record in self._patients.values()]

    def list_patient_ids(self) -> List[str]:
        """
        Example:
            ids = store.list_patient_ids()
            # ['P001', 'P002']
        """
        return list(self._patients.keys())

    def patient_count(self) -> int:
        return len(self._patients)

    def get_app_focus(self) -> Dict[str, Any]:
        """
        Get AppFocus (deep copy).

        Returns:
            dict: {'currentRole', 'currentScreen', 'selectedPatientId'}
        """
        return copy.deepcopy(self._app)

    def get_ui_state(self) -> Dict[str, Any]:
        return copy.deepcopy(self._ui)

    def snapshot_state(self) -> Dict[str, Any]:
        """
        Export complete state in the persisted layout.

        Returns:
            dict: {
                'app': {...},       # AppFocus
                'patients': {...},  # id -> PatientRecord
                'ui': {...}         # presentation scratch
            }

        Note:
            Deep copy; JSON-serializable as long as callers stored
            JSON-compatible values in free-text fields.
        """
        return {
            'app': copy.deepcopy(self._app),
            'patients': copy.deepcopy(self._patients),
            'ui': copy.deepcopy(self._ui),
        }

    def get_summary_stats(self) -> Dict[str, Any]:
        """
        Get summary statistics (for debugging/logging).

        Returns:
            dict: Summary of current state
        """
        return {
            'total_patients': len(self._patients),
            'patient_ids': self.list_patient_ids(),
            'total_sessions': sum(len(r.get('sessions', [])) for r in self._patients.values()),
            'total_notes': sum(len(r.get('notes', [])) for r in self._patients.values()),
            'current_role': self._app.get('currentRole'),
            'selected_patient_id': self._app.get('selectedPatientId'),
        }

    # ========================
    # Mutation Hooks (ClinicActions / StatePersistence only)
    # ========================

    def _live_patient(self, patient_id: str) -> Optional[Dict[str, Any]]:
        """Live (not copied) record reference, or None if unknown"""
        return self._patients.get(patient_id)

    def _insert_patient(self, record: Dict[str, Any]) -> None:
        patient_id = record['profile']['id']
        self._patients[patient_id] = record
        logger.debug(f"Inserted patient {patient_id}")

    def _install_patients(self, patients: Dict[str, Dict[str, Any]]) -> None:
        """Replace the entire patient mapping"""
        self._patients = patients

    def _set_focus(self, **fields) -> None:
        """
        Update AppFocus fields.

        Example:
            store._set_focus(currentRole='doctor', selectedPatientId=None)
        """
        self._app.update(fields)
        logger.debug(f"App focus: {fields}")

    def _merge_snapshot(self, data: Dict[str, Any]) -> None:
        """
        Shallow-merge a persisted snapshot into the live store.

        Each top-level key present in data replaces the in-memory value
        wholesale; keys absent from data keep their current value.
        Unknown top-level keys are ignored. Nested shapes are not validated.
        """
        if 'app' in data:
            self._app = copy.deepcopy(data['app'])
        if 'patients' in data:
            self._patients = copy.deepcopy(data['patients'])
        if 'ui' in data:
            self._ui = copy.deepcopy(data['ui'])

        ignored = set(data) - set(SNAPSHOT_KEYS)
        if ignored:
            logger.debug(f"Ignored unknown snapshot keys: {sorted(ignored)}")

    def _clear(self) -> None:
        """
        Clear all state.

        Warning: This erases all patients. Use with caution.
        """
        self._app = default_app_focus()
        self._patients = {}
        self._ui = default_ui_state()
        logger.info("Record Store cleared - all data removed")
