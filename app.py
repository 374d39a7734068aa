"""
Flask Web Application for the Clinical Workflow Demo

JSON endpoints that drive ClinicActions the way the role screens do.
Form-level checks (required fields, minimum session length) live here,
not in the action layer.
"""

from flask import Flask, current_app, request, jsonify
import logging

from clinic_backend import commands
from clinic_backend.core.record_store import RecordStore
from clinic_backend.core.workflow_actions import ClinicActions
from clinic_backend.persistence import (
    DEFAULT_STORAGE_DIR,
    FileKeyValueStore,
    StatePersistence,
)
from clinic_backend.results import FailureReason
from clinic_backend.utils.display_helpers import patient_header, role_label
from clinic_backend.utils.roles import ROLE_LABELS, ROLE_LIST

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


MIN_SESSION_DURATION = 10

# Failure reason -> HTTP status
FAILURE_STATUS = {
    FailureReason.PATIENT_NOT_FOUND: 404,
    FailureReason.NOTE_NOT_FOUND: 404,
    FailureReason.CONSENT_REQUIRED: 409,
    FailureReason.ASSESSMENTS_INCOMPLETE: 409,
    FailureReason.UNKNOWN_ASSESSMENT: 400,
    FailureReason.MISSING_SCORE: 400,
    FailureReason.UNKNOWN_COMMAND: 400,
}


def create_app(kv_store=None, config=None):
    """
    Build the Flask app with its own store, persistence and actions.

    Args:
        kv_store: Key-value store override (tests pass InMemoryKeyValueStore)
        config: Extra Flask config (STORAGE_DIR, SECRET_KEY,
            ENFORCE_PLAN_PREREQUISITES)

    Returns:
        Flask app; the ClinicActions handle is app.extensions['clinic_actions']
    """
    app = Flask(__name__)
    app.config['SECRET_KEY'] = 'sozo-clinical-demo-secret-key'
    app.config['STORAGE_DIR'] = DEFAULT_STORAGE_DIR
    app.config['ENFORCE_PLAN_PREREQUISITES'] = False
    if config:
        app.config.update(config)

    if kv_store is None:
        kv_store = FileKeyValueStore(app.config['STORAGE_DIR'])

    store = RecordStore()
    persistence = StatePersistence(kv_store)
    if persistence.has_saved_state():
        logger.info(f"Found saved state under {persistence.storage_key}")
    outcome = persistence.load(store)
    actions = ClinicActions(
        store,
        persistence,
        enforce_plan_prerequisites=app.config['ENFORCE_PLAN_PREREQUISITES']
    )
    app.extensions['clinic_actions'] = actions
    logger.info(f"State loaded: {outcome.value}")

    _register_routes(app)
    return app


def _actions() -> ClinicActions:
    return current_app.extensions['clinic_actions']


def _result_response(result, success_status=200):
    if result:
        return jsonify(result.to_json()), success_status
    body = result.to_json()
    body['error'] = result.message
    return jsonify(body), FAILURE_STATUS.get(result.reason, 400)


def _error(message, status=400):
    return jsonify({
        'success': False,
        'error': message
    }), status


def _register_routes(app):

    @app.route('/api/state', methods=['GET'])
    def get_state():
        """Whole store as persisted, plus header text for the current focus"""
        actions = _actions()
        focus = actions.store.get_app_focus()
        selected = actions.get_patient(focus['selectedPatientId']) if focus['selectedPatientId'] else None
        return jsonify({
            'success': True,
            'state': actions.store.snapshot_state(),
            'role_label': role_label(focus['currentRole']),
            'header': patient_header(selected),
        })

    @app.route('/api/roles', methods=['GET'])
    def list_roles():
        return jsonify({
            'success': True,
            'roles': [{'value': r.value, 'label': ROLE_LABELS[r]} for r in ROLE_LIST],
        })

    @app.route('/api/role', methods=['POST'])
    def select_role():
        data = request.get_json(silent=True) or {}
        return _result_response(_actions().handle(commands.SelectRole(data.get('role'))))

    @app.route('/api/patients', methods=['GET'])
    def list_patients():
        return jsonify({
            'success': True,
            'patients': _actions().get_all_patients(),
        })

    @app.route('/api/patients', methods=['POST'])
    def create_patient():
        """Receptionist intake form: name and age required"""
        try:
            data = request.get_json(silent=True) or {}
            if not str(data.get('name', '')).strip() or not data.get('age'):
                return _error('Name and age are required')

            actions = _actions()
            result = actions.handle(commands.CreatePatient(profile=data))
            actions.select_patient(result.patient_id)
            return _result_response(result, 201)

        except Exception as e:
            logger.error(f"Error creating patient: {e}")
            return _error(str(e), 500)

    @app.route('/api/register', methods=['POST'])
    def register_patient():
        """Patient self-registration: name, age, phone and consent box required"""
        data = request.get_json(silent=True) or {}
        if not str(data.get('name', '')).strip() or not data.get('age') or not str(data.get('phone', '')).strip():
            return _error('Please fill in all required fields')
        if not data.get('consent'):
            return _error('Please agree to the terms and consent to continue')

        profile = {k: v for k, v in data.items() if k != 'consent'}
        return _result_response(_actions().handle(commands.RegisterPatient(profile=profile)), 201)

    @app.route('/api/patients/<patient_id>', methods=['GET'])
    def get_patient(patient_id):
        actions = _actions()
        patient = actions.get_patient(patient_id)
        if patient is None:
            return _error('Patient not found', 404)

        return jsonify({
            'success': True,
            'patient': patient,
            'assessment_summary': actions.get_assessment_summary(patient_id),
            'can_proceed': actions.can_proceed(patient_id),
            'payment_status_text': actions.payment_status_text(patient_id),
            'treatment_progress': actions.treatment_progress(patient_id),
            'ready_for_plan': actions.assessments_complete_for_plan(patient_id),
        })

    @app.route('/api/patients/<patient_id>/select', methods=['POST'])
    def select_patient(patient_id):
        return _result_response(_actions().handle(commands.SelectPatient(patient_id)))

    @app.route('/api/patients/<patient_id>/consent', methods=['POST'])
    def toggle_consent(patient_id):
        return _result_response(_actions().handle(commands.ToggleConsent(patient_id)))

    @app.route('/api/patients/<patient_id>/payment', methods=['POST'])
    def update_payment(patient_id):
        """
        Body {"mode": "toggle" | "later" | "paid"}; default toggle.

        toggle is the receptionist's consent-gated switch; later and paid are
        the patient's own buttons.
        """
        data = request.get_json(silent=True) or {}
        mode = data.get('mode', 'toggle')

        if mode == 'toggle':
            command = commands.TogglePayment(patient_id)
        elif mode == 'later':
            command = commands.SetPayLater(patient_id)
        elif mode == 'paid':
            command = commands.PatientMarkPaid(patient_id)
        else:
            return _error(f"Unknown payment mode: {mode}")

        return _result_response(_actions().handle(command))

    @app.route('/api/patients/<patient_id>/assessments/<kind>', methods=['POST'])
    def update_assessment(patient_id, kind):
        data = request.get_json(silent=True) or {}
        return _result_response(_actions().handle(commands.UpdateAssessment(patient_id, kind, data)))

    @app.route('/api/patients/<patient_id>/prs', methods=['POST'])
    def perform_prs(patient_id):
        """Clinical assistant PRS protocol (simulated score unless one is given)"""
        data = request.get_json(silent=True) or {}
        return _result_response(_actions().perform_prs(
            patient_id,
            assistant_name=data.get('assistant', 'Clinical Assistant'),
            score=data.get('score'),
        ))

    @app.route('/api/patients/<patient_id>/plan', methods=['POST'])
    def create_treatment_plan(patient_id):
        """Doctor plan form: disease, device and sessionsPlanned required"""
        data = request.get_json(silent=True) or {}
        if not data.get('disease') or not data.get('device') or not data.get('sessionsPlanned'):
            return _error('Please fill in all required fields')

        return _result_response(_actions().handle(commands.CreateTreatmentPlan(patient_id, data)), 201)

    @app.route('/api/patients/<patient_id>/sessions', methods=['POST'])
    def record_session(patient_id):
        """Clinical assistant session log: duration of at least MIN_SESSION_DURATION minutes"""
        data = request.get_json(silent=True) or {}
        try:
            duration = int(data.get('duration') or 0)
        except (TypeError, ValueError):
            duration = 0

        if duration < MIN_SESSION_DURATION:
            return _error(f'Please enter a valid session duration (minimum {MIN_SESSION_DURATION} minutes)')

        return _result_response(_actions().record_session(
            patient_id,
            duration=duration,
            observations=data.get('observations', ''),
            feedback=data.get('patientFeedback', ''),
            media_attached=bool(data.get('mediaAttached')),
            completed_by=data.get('completedBy', 'Clinical Assistant'),
        ), 201)

    @app.route('/api/patients/<patient_id>/notes', methods=['POST'])
    def add_note(patient_id):
        data = request.get_json(silent=True) or {}
        if not str(data.get('text', '')).strip():
            return _error('Note text is required')

        author = data.get('author') or role_label(_actions().store.get_app_focus()['currentRole'])
        return _result_response(_actions().handle(commands.AddNote(patient_id, author, data['text'])), 201)

    @app.route('/api/patients/<patient_id>/notes/<int:index>', methods=['PUT'])
    def update_note(patient_id, index):
        data = request.get_json(silent=True) or {}
        return _result_response(_actions().handle(commands.UpdateNote(patient_id, index, data.get('text', ''))))

    @app.route('/api/reset', methods=['POST'])
    def reset_state():
        """Development helper: discard all demo data"""
        try:
            return _result_response(_actions().handle(commands.ResetState()))
        except Exception as e:
            logger.error(f"Error resetting state: {e}")
            return _error(str(e), 500)


if __name__ == '__main__':
    app = create_app()

    # Start Flask server
    print("\n" + "="*60)
    print("SOZO CLINICAL WORKFLOW DEMO - API SERVER")
    print("="*60)
    print("\nServer starting...")
    print("API available at: http://localhost:5000/api/state")
    print("\nPress Ctrl+C to stop the server")
    print("="*60 + "\n")

    app.run(debug=False, host='0.0.0.0', port=5000)
