"""
Console Harness for ClinicActions

Walks one patient through the full workflow (intake -> consent -> payment ->
assessments -> treatment plan -> sessions) against an in-memory store and
prints what each role would see.
"""

import json
import logging
import sys

from clinic_backend.core.record_store import RecordStore
from clinic_backend.core.workflow_actions import ClinicActions
from clinic_backend.persistence import InMemoryKeyValueStore, StatePersistence
from clinic_backend.utils.roles import AssessmentKind, Device, Role
from clinic_backend.utils.display_helpers import role_label

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def print_separator(char="=", length=60):
    """Print a separator line"""
    print(char * length)


def print_result(label, result):
    status = "OK" if result else f"REJECTED ({result.reason.value}: {result.message})"
    print(f"  {label:<32} {status}")


def main():
    """Run console walkthrough"""
    print_separator()
    print("CLINICAL WORKFLOW - CONSOLE WALKTHROUGH")
    print_separator()

    store = RecordStore()
    persistence = StatePersistence(InMemoryKeyValueStore())
    outcome = persistence.load(store)
    actions = ClinicActions(store, persistence)
    print(f"\nState: {outcome.value}, patients: {store.list_patient_ids()}\n")

    # Receptionist
    actions.select_role(Role.RECEPTIONIST)
    print(f"[{role_label(Role.RECEPTIONIST)}]")
    created = actions.create_patient({'name': 'Jane', 'age': 40, 'gender': 'F'})
    patient_id = created.patient_id
    print_result(f"create patient {patient_id}", created)
    print_result("payment before consent", actions.toggle_payment(patient_id))
    print_result("collect consent", actions.toggle_consent(patient_id))
    print_result("process payment", actions.toggle_payment(patient_id))
    print(f"  can proceed: {actions.can_proceed(patient_id)}")

    # Doctor
    actions.select_role(Role.DOCTOR)
    actions.select_patient(patient_id)
    print(f"\n[{role_label(Role.DOCTOR)}]")
    for kind in (AssessmentKind.FNON, AssessmentKind.BRAIN_MAPPING):
        print_result(f"assessment {kind.value}", actions.perform_assessment(patient_id, kind))

    # Clinical assistant PRS
    actions.select_role(Role.CLINICAL_ASSISTANT)
    actions.select_patient(patient_id)
    print(f"\n[{role_label(Role.CLINICAL_ASSISTANT)}]")
    print_result("PRS protocol", actions.perform_prs(patient_id))
    print(f"  summary: {' | '.join(actions.get_assessment_summary(patient_id).values())}")

    # Doctor plan
    actions.select_role(Role.DOCTOR)
    print(f"\n[{role_label(Role.DOCTOR)}]")
    print(f"  ready for plan: {actions.assessments_complete_for_plan(patient_id)}")
    print_result("treatment plan", actions.create_treatment_plan(patient_id, {
        'disease': 'anxiety',
        'device': Device.TPS.value,
        'montage': 'F3-F4',
        'sessionsPlanned': 8,
    }))

    # Clinical assistant sessions
    actions.select_role(Role.CLINICAL_ASSISTANT)
    print(f"\n[{role_label(Role.CLINICAL_ASSISTANT)}]")
    for duration in (30, 25):
        print_result(f"session ({duration} min)", actions.record_session(
            patient_id, duration=duration, observations="Tolerated well"
        ))

    # Patient view
    actions.select_role(Role.PATIENT)
    actions.select_patient(patient_id)
    progress = actions.treatment_progress(patient_id)
    print(f"\n[{role_label(Role.PATIENT)}]")
    print(f"  {actions.payment_status_text(patient_id)}")
    print(f"  sessions {progress['completed']}/{progress['planned']} ({progress['percent']}%)")

    print()
    print_separator()
    print("FINAL RECORD")
    print_separator()
    print(json.dumps(actions.get_patient(patient_id), indent=2, ensure_ascii=False))
    print_separator()
    print(f"Stats: {store.get_summary_stats()}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
