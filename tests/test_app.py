"""
Test Flask JSON surface

Uses an in-memory key-value store so nothing touches disk.
"""

import pytest

from app import create_app
from clinic_backend.persistence import InMemoryKeyValueStore


@pytest.fixture
def client():
    app = create_app(kv_store=InMemoryKeyValueStore())
    app.config['TESTING'] = True
    return app.test_client()


def create_jane(client):
    response = client.post('/api/patients', json={'name': 'Jane', 'age': 40})
    assert response.status_code == 201
    return response.get_json()['patient_id']


def test_state_starts_with_seed(client):
    response = client.get('/api/state')

    data = response.get_json()
    assert response.status_code == 200
    assert list(data['state']['patients']) == ['P001']
    assert data['header'] == 'No patient selected'


def test_roles_listed_in_order(client):
    roles = client.get('/api/roles').get_json()['roles']
    assert [r['value'] for r in roles] == ['receptionist', 'doctor', 'clinicalAssistant', 'patient']


def test_create_patient_requires_name_and_age(client):
    response = client.post('/api/patients', json={'name': 'Jane'})

    assert response.status_code == 400
    assert response.get_json()['error'] == 'Name and age are required'


def test_create_patient_selects_it(client):
    pid = create_jane(client)

    state = client.get('/api/state').get_json()['state']
    assert pid == 'P002'
    assert state['app']['selectedPatientId'] == 'P002'


def test_payment_requires_consent(client):
    pid = create_jane(client)

    response = client.post(f'/api/patients/{pid}/payment', json={})

    body = response.get_json()
    assert response.status_code == 409
    assert body['reason'] == 'consent_required'
    assert body['success'] is False


def test_payment_after_consent(client):
    pid = create_jane(client)
    client.post(f'/api/patients/{pid}/consent')

    response = client.post(f'/api/patients/{pid}/payment', json={'mode': 'toggle'})

    assert response.status_code == 200
    assert response.get_json()['data']['status'] == 'completed'
    detail = client.get(f'/api/patients/{pid}').get_json()
    assert detail['can_proceed'] is True
    assert detail['payment_status_text'] == 'Payment completed'


def test_unknown_patient_is_404(client):
    assert client.get('/api/patients/P999').status_code == 404
    assert client.post('/api/patients/P999/consent').status_code == 404
    assert client.post('/api/patients/P999/payment', json={'mode': 'paid'}).status_code == 404


def test_select_unknown_patient_leaves_focus(client):
    response = client.post('/api/patients/P999/select')

    assert response.status_code == 404
    assert response.get_json()['reason'] == 'patient_not_found'
    app_focus = client.get('/api/state').get_json()['state']['app']
    assert app_focus['selectedPatientId'] is None
    assert app_focus['currentScreen'] == 'dashboard'


def test_create_patient_returns_new_id(client):
    response = client.post('/api/patients', json={'name': 'Jane', 'age': 40})

    body = response.get_json()
    assert response.status_code == 201
    assert body['success'] is True
    assert body['patient_id'] == 'P002'


def test_unknown_assessment_is_400(client):
    response = client.post('/api/patients/P001/assessments/mri', json={'score': 3})
    assert response.status_code == 400


def test_plan_form_validation(client):
    pid = create_jane(client)

    missing = client.post(f'/api/patients/{pid}/plan', json={'disease': 'anxiety'})
    assert missing.status_code == 400

    ok = client.post(f'/api/patients/{pid}/plan', json={
        'disease': 'anxiety', 'device': 'TPS', 'sessionsPlanned': 8
    })
    assert ok.status_code == 201


def test_session_minimum_duration(client):
    pid = create_jane(client)

    short = client.post(f'/api/patients/{pid}/sessions', json={'duration': 5})
    assert short.status_code == 400

    ok = client.post(f'/api/patients/{pid}/sessions', json={'duration': 30})
    assert ok.status_code == 201
    assert ok.get_json()['data']['session_number'] == 1


def test_register_requires_consent_box(client):
    form = {'name': 'Pat', 'age': 33, 'phone': '555-0101'}

    refused = client.post('/api/register', json=form)
    assert refused.status_code == 400

    accepted = client.post('/api/register', json={**form, 'consent': True})
    pid = accepted.get_json()['patient_id']
    patient = client.get(f'/api/patients/{pid}').get_json()['patient']
    assert patient['consent']['status'] is True
    assert patient['profile']['phone'] == '555-0101'


def test_notes_add_and_update(client):
    client.post('/api/role', json={'role': 'doctor'})

    added = client.post('/api/patients/P001/notes', json={'text': 'Check EEG'})
    assert added.status_code == 201

    updated = client.put('/api/patients/P001/notes/0', json={'text': 'EEG reviewed'})
    assert updated.status_code == 200

    missing = client.put('/api/patients/P001/notes/4', json={'text': 'nope'})
    assert missing.status_code == 404

    note = client.get('/api/patients/P001').get_json()['patient']['notes'][0]
    assert note['author'] == 'Doctor'
    assert note['text'] == 'EEG reviewed'


def test_reset(client):
    create_jane(client)

    response = client.post('/api/reset')

    assert response.status_code == 200
    patients = client.get('/api/patients').get_json()['patients']
    assert [p['profile']['id'] for p in patients] == ['P001']
