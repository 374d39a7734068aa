"""
Clinic Actions - The only mutation surface over the Record Store

Responsibilities:
- Validate preconditions for every workflow transition
- Mutate exactly one PatientRecord (or AppFocus) per call
- Persist the whole store after every successful mutation
- Report failures as ActionResult values, never as exceptions

Workflow ordering (advisory, checked by callers before invoking):
    consent -> payment -> assessments (any order) -> treatment plan -> sessions

Only the consent-before-payment edge is hard-enforced here (toggle_payment).
The plan-requires-assessments edge is enforced only when the actions object
is built with enforce_plan_prerequisites=True.

Design principles:
- Synchronous: validate -> mutate -> save -> return
- Failed actions neither mutate nor persist
- Failures logged at WARNING and returned as ActionResult.fail(...)
- Reads never persist
"""

import logging
import random
from typing import Dict, Any, List, Optional

from clinic_backend import commands
from clinic_backend.contracts import (
    AssessmentInput,
    PatientProfileInput,
    SessionInput,
    TreatmentPlanInput,
    coerce,
)
from clinic_backend.core.record_store import (
    DEFAULT_SCREEN,
    PATIENT_DETAILS_SCREEN,
    RecordStore,
    new_patient_record,
)
from clinic_backend.persistence import StatePersistence
from clinic_backend.results import ActionResult, FailureReason
from clinic_backend.utils import display_helpers
from clinic_backend.utils.helpers import (
    format_patient_id,
    generate_plan_id,
    parse_patient_sequence,
    utc_now_iso,
)
from clinic_backend.utils.roles import (
    AssessmentKind,
    PaymentStatus,
    PlanStatus,
    PLAN_PREREQUISITE_ASSESSMENTS,
    Role,
    parse_assessment_kind,
)

logger = logging.getLogger(__name__)


class ClinicActions:
    """
    Action API bound to one Record Store and one persistence adapter

    Example:
        store = RecordStore()
        persistence = StatePersistence(InMemoryKeyValueStore())
        persistence.load(store)
        actions = ClinicActions(store, persistence)

        pid = actions.create_patient({'name': 'Jane', 'age': 40}).patient_id
        actions.toggle_consent(pid)
        if not actions.toggle_payment(pid):
            ...  # consent required
    """

    # First generated id after the seeded P001
    FIRST_PATIENT_SEQUENCE = 2

    DEFAULT_SESSIONS_PLANNED = 6

    # Demo score ranges used when a screen simulates an assessment
    PRS_DEMO_SCORE_RANGE = (10, 49)
    DOCTOR_DEMO_SCORE_RANGE = (50, 99)

    def __init__(
        self,
        store: RecordStore,
        persistence: StatePersistence,
        enforce_plan_prerequisites: bool = False,
        rng: Optional[random.Random] = None
    ):
        """
        Args:
            store: Live Record Store (already loaded or seeded)
            persistence: Adapter used to save after every mutation
            enforce_plan_prerequisites: If True, create_treatment_plan requires
                FNON, PRS and brain mapping to be complete
            rng: Random source for simulated assessment scores

        Raises:
            TypeError: If store is not a RecordStore
        """
        if not isinstance(store, RecordStore):
            raise TypeError("store must be a RecordStore instance")
        if not (hasattr(persistence, 'save') and callable(getattr(persistence, 'save', None))):
            raise TypeError("persistence must have callable save() method")

        self.store = store
        self.persistence = persistence
        self.enforce_plan_prerequisites = enforce_plan_prerequisites
        self.rng = rng or random.Random()
        self._patient_counter = self._next_free_sequence()

        logger.info(
            f"Clinic Actions initialized (next id {format_patient_id(self._patient_counter)}, "
            f"plan prerequisites {'enforced' if enforce_plan_prerequisites else 'advisory'})"
        )

    # ========================
    # Private Helpers
    # ========================

    def _next_free_sequence(self) -> int:
        """Counter value past every P<n> id already in the store"""
        existing = [
            seq for seq in (parse_patient_sequence(pid) for pid in self.store.list_patient_ids())
            if seq is not None
        ]
        return max([self.FIRST_PATIENT_SEQUENCE - 1] + existing) + 1

    def _commit(self) -> None:
        self.persistence.save(self.store)

    def _patient_or_fail(self, action: str, patient_id: str):
        """
        Resolve live record.

        Returns:
            tuple: (record, None) when found, (None, ActionResult) otherwise
        """
        record = self.store._live_patient(patient_id)
        if record is None:
            logger.warning(f"{action}: patient {patient_id} not found")
            return None, ActionResult.fail(
                action, FailureReason.PATIENT_NOT_FOUND,
                f"Patient {patient_id} not found", patient_id=patient_id
            )
        return record, None

    # ========================
    # App Focus
    # ========================

    def select_role(self, role: str) -> ActionResult:
        """
        Switch role. Clears the selected patient and returns to the dashboard.

        Any string is accepted; the role is a label, not a security boundary.
        """
        role_value = role.value if isinstance(role, Role) else role
        self.store._set_focus(
            currentRole=role_value,
            currentScreen=DEFAULT_SCREEN,
            selectedPatientId=None,
        )
        self._commit()
        logger.info(f"Role selected: {role_value}")
        return ActionResult.ok('select_role', role=role_value)

    def select_patient(self, patient_id: str) -> ActionResult:
        record, failure = self._patient_or_fail('select_patient', patient_id)
        if failure is not None:
            return failure

        self.store._set_focus(
            selectedPatientId=patient_id,
            currentScreen=PATIENT_DETAILS_SCREEN,
        )
        self._commit()
        return ActionResult.ok('select_patient', patient_id)

    # ========================
    # Receptionist
    # ========================

    def create_patient(self, profile=None) -> ActionResult:
        """
        Register a new patient with every sub-object at its default state.

        Args:
            profile: PatientProfileInput or dict {name, age, gender, ...}.
                Falsy name/age/gender become 'New Patient' / 30 / '-'.

        Returns:
            ActionResult whose patient_id is the new id (e.g. 'P002')
        """
        profile = coerce(PatientProfileInput, profile)

        patient_id = format_patient_id(self._patient_counter)
        self._patient_counter += 1

        record = new_patient_record(
            patient_id,
            name=profile.name or 'New Patient',
            age=profile.age or 30,
            gender=profile.gender or '-',
            phone=profile.phone or None,
            email=profile.email or None,
            medicalHistory=profile.medical_history or None,
        )
        self.store._insert_patient(record)
        self._commit()

        logger.info(f"Created patient {patient_id} ({record['profile']['name']})")
        return ActionResult.ok('create_patient', patient_id)

    def toggle_consent(self, patient_id: str) -> ActionResult:
        """Flip consent; stamp consentDate when it becomes True"""
        record, failure = self._patient_or_fail('toggle_consent', patient_id)
        if failure is not None:
            return failure

        consent = record['consent']
        consent['status'] = not consent['status']
        if consent['status']:
            consent['consentDate'] = utc_now_iso()
        self._commit()

        logger.info(f"Patient {patient_id}: consent {'given' if consent['status'] else 'revoked'}")
        return ActionResult.ok('toggle_consent', patient_id, consent=consent['status'])

    def toggle_payment(self, patient_id: str) -> ActionResult:
        """
        Flip payment between pending and completed.

        Any status other than pending (completed, payLater) flips to pending.
        paymentDate is stamped only on the transition into completed.

        Returns:
            ActionResult; fails with CONSENT_REQUIRED (no change) when consent
            has not been given
        """
        record, failure = self._patient_or_fail('toggle_payment', patient_id)
        if failure is not None:
            return failure

        if not record['consent']['status']:
            logger.warning(f"toggle_payment: consent required before payment ({patient_id})")
            return ActionResult.fail(
                'toggle_payment', FailureReason.CONSENT_REQUIRED,
                "Consent required before payment processing", patient_id=patient_id
            )

        payment = record['payment']
        if payment['status'] == PaymentStatus.PENDING.value:
            new_status = PaymentStatus.COMPLETED.value
        else:
            new_status = PaymentStatus.PENDING.value

        payment['status'] = new_status
        if new_status == PaymentStatus.COMPLETED.value:
            payment['paymentDate'] = utc_now_iso()
        self._commit()

        logger.info(f"Patient {patient_id}: payment -> {new_status}")
        return ActionResult.ok('toggle_payment', patient_id, status=new_status)

    def set_pay_later(self, patient_id: str) -> ActionResult:
        """Schedule payment for later. No consent check."""
        record, failure = self._patient_or_fail('set_pay_later', patient_id)
        if failure is not None:
            return failure

        record['payment']['status'] = PaymentStatus.PAY_LATER.value
        self._commit()
        return ActionResult.ok('set_pay_later', patient_id, status=PaymentStatus.PAY_LATER.value)

    # ========================
    # Patient Self-Service
    # ========================

    def patient_mark_paid(self, patient_id: str) -> ActionResult:
        """
        Patient completes payment from their own screen.

        Unlike toggle_payment this does NOT require consent. Self-registration
        grants consent before payment is offered, so the patient screen never
        reaches here without it, but nothing here checks.
        """
        record, failure = self._patient_or_fail('patient_mark_paid', patient_id)
        if failure is not None:
            return failure

        record['payment']['status'] = PaymentStatus.COMPLETED.value
        record['payment']['paymentDate'] = utc_now_iso()
        self._commit()

        logger.info(f"Patient {patient_id}: marked paid by patient")
        return ActionResult.ok('patient_mark_paid', patient_id, status=PaymentStatus.COMPLETED.value)

    def register_patient(self, profile=None) -> ActionResult:
        """
        Self-registration: create, grant consent, select.

        The registration form requires ticking the consent box, so consent
        is granted as part of registering.

        Returns:
            The create_patient result
        """
        created = self.create_patient(profile)
        patient_id = created.patient_id
        self.toggle_consent(patient_id)
        self.select_patient(patient_id)
        return created

    # ========================
    # Doctor
    # ========================

    def update_assessment(self, patient_id: str, kind, result=None) -> ActionResult:
        """
        Record an assessment result.

        Merges score / completedBy / notes into the slot and stamps
        completedAt. Re-invoking overwrites; no history is kept.

        Args:
            patient_id: Patient to update
            kind: AssessmentKind or slot name ('prs', 'fnon', 'eeg', 'brainMapping')
            result: AssessmentInput or dict {score, completedBy, notes}

        Returns:
            ActionResult; fails with UNKNOWN_ASSESSMENT for an unrecognized
            slot, MISSING_SCORE when no score is supplied
        """
        record, failure = self._patient_or_fail('update_assessment', patient_id)
        if failure is not None:
            return failure

        assessment_kind = parse_assessment_kind(kind)
        if assessment_kind is None or assessment_kind.value not in record['assessments']:
            logger.warning(f"update_assessment: assessment type {kind} not found")
            return ActionResult.fail(
                'update_assessment', FailureReason.UNKNOWN_ASSESSMENT,
                f"Assessment type {kind} not found", patient_id=patient_id
            )

        result = coerce(AssessmentInput, result)
        if result.score is None:
            logger.warning(f"update_assessment: no score for {assessment_kind.value} ({patient_id})")
            return ActionResult.fail(
                'update_assessment', FailureReason.MISSING_SCORE,
                "Assessment score is required", patient_id=patient_id
            )

        slot = dict(record['assessments'][assessment_kind.value])
        slot['score'] = result.score
        if result.completed_by is not None:
            slot['completedBy'] = result.completed_by
        if result.notes is not None:
            slot['notes'] = result.notes
        slot['completedAt'] = utc_now_iso()
        record['assessments'][assessment_kind.value] = slot
        self._commit()

        logger.info(f"Patient {patient_id}: {assessment_kind.value} scored {result.score}")
        return ActionResult.ok('update_assessment', patient_id, kind=assessment_kind.value, score=result.score)

    def perform_assessment(
        self,
        patient_id: str,
        kind,
        clinician: str = 'Dr. Smith',
        score: Optional[float] = None
    ) -> ActionResult:
        """
        Doctor runs an assessment from the assessment dashboard.

        Without an explicit score a demo score in DOCTOR_DEMO_SCORE_RANGE is drawn.
        """
        assessment_kind = parse_assessment_kind(kind)
        if score is None:
            score = self.rng.randint(*self.DOCTOR_DEMO_SCORE_RANGE)

        label = assessment_kind.value.upper() if assessment_kind else str(kind).upper()
        return self.update_assessment(patient_id, kind, AssessmentInput(
            score=score,
            completed_by=clinician,
            notes=f"{label} assessment completed successfully.",
        ))

    def create_treatment_plan(self, patient_id: str, plan=None) -> ActionResult:
        """
        Create or replace the treatment plan.

        The previous plan (if any) is discarded entirely. createdBy is always
        the doctor role and status is forced to active.

        Args:
            patient_id: Patient to update
            plan: TreatmentPlanInput or dict
                {disease, device, montage, sessionsPlanned, clinicalNotes}

        Returns:
            ActionResult with data['plan_id']
        """
        record, failure = self._patient_or_fail('create_treatment_plan', patient_id)
        if failure is not None:
            return failure

        if self.enforce_plan_prerequisites and not self._plan_prerequisites_met(record):
            logger.warning(f"create_treatment_plan: assessments incomplete ({patient_id})")
            return ActionResult.fail(
                'create_treatment_plan', FailureReason.ASSESSMENTS_INCOMPLETE,
                "Complete FNON, PRS and brain mapping before creating a treatment plan",
                patient_id=patient_id
            )

        plan = coerce(TreatmentPlanInput, plan)
        plan_id = generate_plan_id()

        record['treatmentPlan'] = {
            'id': plan_id,
            'createdBy': Role.DOCTOR.value,
            'createdAt': utc_now_iso(),
            'disease': plan.disease or None,
            'device': plan.device or None,
            'montage': plan.montage or None,
            'sessionsPlanned': plan.sessions_planned or self.DEFAULT_SESSIONS_PLANNED,
            'clinicalNotes': plan.clinical_notes or None,
            'status': PlanStatus.ACTIVE.value,
        }
        self._commit()

        logger.info(f"Patient {patient_id}: treatment plan {plan_id} created")
        return ActionResult.ok('create_treatment_plan', patient_id, plan_id=plan_id)

    # ========================
    # Clinical Assistant
    # ========================

    def perform_prs(
        self,
        patient_id: str,
        assistant_name: str = 'Clinical Assistant',
        score: Optional[int] = None
    ) -> ActionResult:
        """
        Clinical assistant PRS protocol: record the score and leave a note.

        Without an explicit score a demo score in PRS_DEMO_SCORE_RANGE is drawn.
        """
        if score is None:
            score = self.rng.randint(*self.PRS_DEMO_SCORE_RANGE)

        result = self.update_assessment(patient_id, AssessmentKind.PRS, AssessmentInput(
            score=score,
            completed_by=assistant_name,
            notes="PRS assessment completed successfully via clinical assistant protocol",
        ))
        if result:
            self.add_note(patient_id, assistant_name, f"PRS assessment completed with score: {score}")
        return result

    def add_session(self, patient_id: str, session=None) -> ActionResult:
        """
        Append a session entry.

        sessionNumber is len(sessions) + 1 at append time.

        Returns:
            ActionResult with data['session_number']
        """
        record, failure = self._patient_or_fail('add_session', patient_id)
        if failure is not None:
            return failure

        session = coerce(SessionInput, session)
        session_number = len(record['sessions']) + 1

        record['sessions'].append({
            'sessionNumber': session_number,
            'date': utc_now_iso(),
            'device': session.device or None,
            'montage': session.montage or None,
            'duration': session.duration or 0,
            'notes': session.notes or '',
            'observations': session.observations or '',
            'patientFeedback': session.patient_feedback or '',
            'mediaAttached': bool(session.media_attached),
            'completedBy': session.completed_by or None,
            'status': 'completed',
        })
        self._commit()

        logger.info(f"Patient {patient_id}: session {session_number} recorded")
        return ActionResult.ok('add_session', patient_id, session_number=session_number)

    def record_session(
        self,
        patient_id: str,
        duration: int,
        observations: str = '',
        feedback: str = '',
        media_attached: bool = False,
        completed_by: str = 'Clinical Assistant'
    ) -> ActionResult:
        """
        Session log form: device and montage come from the treatment plan,
        then a summary note is appended.
        """
        record, failure = self._patient_or_fail('record_session', patient_id)
        if failure is not None:
            return failure

        plan = record['treatmentPlan']
        result = self.add_session(patient_id, SessionInput(
            device=plan.get('device'),
            montage=plan.get('montage'),
            duration=duration,
            observations=observations,
            patient_feedback=feedback,
            media_attached=media_attached,
            completed_by=completed_by,
        ))

        note = f"Session {result.data['session_number']} completed. Duration: {duration} min."
        if observations:
            note += " Observations recorded."
        self.add_note(patient_id, completed_by, note)
        return result

    def add_note(self, patient_id: str, author: str, text: str) -> ActionResult:
        """
        Append a note.

        Returns:
            ActionResult with data['note_index']
        """
        record, failure = self._patient_or_fail('add_note', patient_id)
        if failure is not None:
            return failure

        record['notes'].append({
            'author': author,
            'text': text,
            'createdAt': utc_now_iso(),
        })
        self._commit()

        logger.debug(f"Patient {patient_id}: note added by {author}")
        return ActionResult.ok('add_note', patient_id, note_index=len(record['notes']) - 1)

    def update_note(self, patient_id: str, index: int, text: str) -> ActionResult:
        """Replace a note's text in place and stamp updatedAt"""
        record, failure = self._patient_or_fail('update_note', patient_id)
        if failure is not None:
            return failure

        notes = record['notes']
        # bool is an int subclass; True/False are not note indices
        if not isinstance(index, int) or isinstance(index, bool) or not 0 <= index < len(notes):
            logger.warning(f"update_note: note {index} not found ({patient_id})")
            return ActionResult.fail(
                'update_note', FailureReason.NOTE_NOT_FOUND,
                f"Note {index} not found", patient_id=patient_id
            )

        notes[index]['text'] = text
        notes[index]['updatedAt'] = utc_now_iso()
        self._commit()
        return ActionResult.ok('update_note', patient_id, note_index=index)

    # ========================
    # Lifecycle
    # ========================

    def reset(self) -> ActionResult:
        """
        Discard everything and reseed the sample patient.

        Warning: This erases all data. Use with caution.
        """
        self.persistence.reset(self.store)
        self._patient_counter = self._next_free_sequence()
        return ActionResult.ok('reset')

    def handle(self, command) -> ActionResult:
        """
        Dispatch a command dataclass to the matching action.

        Args:
            command: One of the types in clinic_backend.commands

        Returns:
            ActionResult; fails with UNKNOWN_COMMAND for anything else
        """
        if isinstance(command, commands.SelectRole):
            return self.select_role(command.role)
        if isinstance(command, commands.SelectPatient):
            return self.select_patient(command.patient_id)
        if isinstance(command, commands.CreatePatient):
            return self.create_patient(command.profile)
        if isinstance(command, commands.RegisterPatient):
            return self.register_patient(command.profile)
        if isinstance(command, commands.ToggleConsent):
            return self.toggle_consent(command.patient_id)
        if isinstance(command, commands.TogglePayment):
            return self.toggle_payment(command.patient_id)
        if isinstance(command, commands.SetPayLater):
            return self.set_pay_later(command.patient_id)
        if isinstance(command, commands.PatientMarkPaid):
            return self.patient_mark_paid(command.patient_id)
        if isinstance(command, commands.UpdateAssessment):
            return self.update_assessment(command.patient_id, command.kind, command.result)
        if isinstance(command, commands.CreateTreatmentPlan):
            return self.create_treatment_plan(command.patient_id, command.plan)
        if isinstance(command, commands.AddSession):
            return self.add_session(command.patient_id, command.session)
        if isinstance(command, commands.AddNote):
            return self.add_note(command.patient_id, command.author, command.text)
        if isinstance(command, commands.UpdateNote):
            return self.update_note(command.patient_id, command.index, command.text)
        if isinstance(command, commands.ResetState):
            return self.reset()

        logger.warning(f"handle: unknown command {type(command).__name__}")
        return ActionResult.fail(
            'handle', FailureReason.UNKNOWN_COMMAND,
            f"Unknown command type: {type(command).__name__}"
        )

    # ========================
    # Reads (never persist)
    # ========================

    def get_all_patients(self) -> List[Dict[str, Any]]:
        return self.store.list_patients()

    def get_patient(self, patient_id: str) -> Optional[Dict[str, Any]]:
        return self.store.get_patient(patient_id)

    def get_assessment_summary(self, patient_id: str) -> Dict[str, str]:
        """
        Returns:
            dict: slot name -> '✔ Label' or '• Label'; {} for unknown patient
        """
        record = self.store._live_patient(patient_id)
        if record is None:
            return {}
        return display_helpers.assessment_summary(record)

    def can_proceed(self, patient_id: str) -> bool:
        """True iff consent given and payment is not pending (pay-later counts)"""
        record = self.store._live_patient(patient_id)
        if record is None:
            return False
        if not record['consent']['status']:
            return False
        return record['payment']['status'] != PaymentStatus.PENDING.value

    def assessments_complete_for_plan(self, patient_id: str) -> bool:
        record = self.store._live_patient(patient_id)
        return record is not None and self._plan_prerequisites_met(record)

    def treatment_progress(self, patient_id: str) -> Optional[Dict[str, Any]]:
        record = self.store._live_patient(patient_id)
        if record is None:
            return None
        return display_helpers.treatment_progress(record)

    def payment_status_text(self, patient_id: str) -> Optional[str]:
        record = self.store._live_patient(patient_id)
        if record is None:
            return None
        return display_helpers.payment_status_text(record['payment']['status'])

    @staticmethod
    def _plan_prerequisites_met(record: Dict[str, Any]) -> bool:
        return all(
            display_helpers.is_assessment_complete(record, kind)
            for kind in PLAN_PREREQUISITE_ASSESSMENTS
        )
