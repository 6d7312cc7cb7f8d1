from datetime import datetime, timedelta

import pytest
from medhubb.models import AuditLog, Prescription, PrescriptionItem, PrescriptionRequest

MEDICATIONS = [
    {'medication_name': 'Ramipril', 'dosage': '5 mg', 'quantity': '2 confezioni',
     'patient_reason': 'Terapia in corso'},
    {'medication_name': 'Cardioaspirin', 'dosage': '100 mg'},
]


@pytest.fixture
def make_prescription_request(db_session):
    """Factory for pending prescription requests."""
    def _make_request(patient, doctor, medications=('Ramipril',), urgency='normal', created_at=None):
        prescription_request = PrescriptionRequest(patient_id=patient.id, doctor_id=doctor.id,
                                                   urgency=urgency, created_at=created_at or datetime.utcnow())
        for name in medications:
            prescription_request.items.append(PrescriptionItem(medication_name=name, dosage='1 cp'))
        db_session.add(prescription_request)
        db_session.commit()
        return prescription_request
    return _make_request


class TestCreatePrescriptionRequest:
    """POST /api/prescriptions"""

    def test_request_success(self, client, linked_patient, approved_doctor, auth_headers, db_session):
        response = client.post('/api/prescriptions', json={
            'doctorId': approved_doctor.id, 'medications': MEDICATIONS, 'patientNotes': 'Grazie'
        }, headers=auth_headers(linked_patient))
        assert response.status_code == 200
        data = response.get_json()
        assert data['message'] == 'Richiesta di prescrizione inviata con successo'

        prescription_request = db_session.get(PrescriptionRequest, data['request_id'])
        assert prescription_request.status == 'pending'
        assert prescription_request.urgency == 'normal'
        assert prescription_request.patient_notes == 'Grazie'
        assert [item.medication_name for item in prescription_request.items] == ['Ramipril', 'Cardioaspirin']
        assert prescription_request.items[0].quantity == '2 confezioni'
        assert prescription_request.items[1].patient_reason is None

    def test_urgent_request(self, client, linked_patient, approved_doctor, auth_headers, db_session):
        response = client.post('/api/prescriptions', json={
            'doctorId': approved_doctor.id, 'medications': MEDICATIONS[:1], 'urgency': 'urgent'
        }, headers=auth_headers(linked_patient))
        assert db_session.get(PrescriptionRequest, response.get_json()['request_id']).urgency == 'urgent'

    def test_at_most_ten_medications(self, client, linked_patient, approved_doctor, auth_headers):
        medications = [{'medication_name': f'Farmaco {n}'} for n in range(11)]
        response = client.post('/api/prescriptions', json={
            'doctorId': approved_doctor.id, 'medications': medications
        }, headers=auth_headers(linked_patient))
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Massimo 10 farmaci per richiesta'

    @pytest.mark.parametrize("medication", [{'dosage': '5 mg'}, {'medication_name': '   '}, 'Ramipril'])
    def test_every_medication_needs_a_name(self, client, linked_patient, approved_doctor, auth_headers,
                                           medication):
        response = client.post('/api/prescriptions', json={
            'doctorId': approved_doctor.id, 'medications': [MEDICATIONS[0], medication]
        }, headers=auth_headers(linked_patient))
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Nome farmaco è obbligatorio per tutti i farmaci'

    def test_invalid_urgency(self, client, linked_patient, approved_doctor, auth_headers):
        response = client.post('/api/prescriptions', json={
            'doctorId': approved_doctor.id, 'medications': MEDICATIONS, 'urgency': 'subito'
        }, headers=auth_headers(linked_patient))
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Livello di urgenza non valido'

    @pytest.mark.parametrize("medications", [None, [], 'Ramipril'])
    def test_medication_list_required(self, client, linked_patient, approved_doctor, auth_headers, medications):
        response = client.post('/api/prescriptions', json={
            'doctorId': approved_doctor.id, 'medications': medications
        }, headers=auth_headers(linked_patient))
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Doctor ID e lista farmaci sono obbligatori'

    def test_requires_active_link(self, client, patient, approved_doctor, auth_headers):
        response = client.post('/api/prescriptions', json={
            'doctorId': approved_doctor.id, 'medications': MEDICATIONS
        }, headers=auth_headers(patient))
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Devi essere collegato a questo medico per richiedere una prescrizione'
        assert PrescriptionRequest.query.count() == 0

    def test_doctors_cannot_request(self, client, approved_doctor, auth_headers):
        response = client.post('/api/prescriptions', json={
            'doctorId': approved_doctor.id, 'medications': MEDICATIONS
        }, headers=auth_headers(approved_doctor))
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Solo i pazienti possono richiedere prescrizioni'

    def test_requires_token(self, client, approved_doctor):
        response = client.post('/api/prescriptions', json={
            'doctorId': approved_doctor.id, 'medications': MEDICATIONS
        })
        assert response.status_code == 401


class TestListPrescriptionRequests:
    """GET /api/prescriptions"""

    def test_patient_sees_newest_first(self, client, linked_patient, approved_doctor,
                                       make_prescription_request, auth_headers):
        older = make_prescription_request(linked_patient, approved_doctor,
                                          created_at=datetime.utcnow() - timedelta(days=2))
        newer = make_prescription_request(linked_patient, approved_doctor, medications=('Ramipril', 'Lasix'))

        response = client.get(f'/api/prescriptions?patientId={linked_patient.id}',
                              headers=auth_headers(linked_patient))
        assert response.status_code == 200
        data = response.get_json()
        assert [r['id'] for r in data['prescriptions']] == [newer.id, older.id]
        latest = data['prescriptions'][0]
        assert [i['medication_name'] for i in latest['prescription_items']] == ['Ramipril', 'Lasix']
        assert latest['doctors']['last_name'] == 'Verdi'
        assert latest['patients']['id'] == linked_patient.id

    def test_doctor_filters(self, client, linked_patient, approved_doctor, make_prescription_request,
                            auth_headers, db_session):
        make_prescription_request(linked_patient, approved_doctor)
        urgent = make_prescription_request(linked_patient, approved_doctor, urgency='urgent')
        handled = make_prescription_request(linked_patient, approved_doctor, urgency='urgent')
        handled.status = 'rejected'
        db_session.commit()

        url = f'/api/prescriptions?doctorId={approved_doctor.id}'
        headers = auth_headers(approved_doctor)
        data = client.get(f'{url}&status=pending&urgency=urgent', headers=headers).get_json()
        assert [r['id'] for r in data['prescriptions']] == [urgent.id]
        assert client.get(url, headers=headers).get_json()['count'] == 3

    def test_cannot_list_someone_else(self, client, approved_doctor, make_doctor, auth_headers):
        response = client.get(f'/api/prescriptions?doctorId={approved_doctor.id}',
                              headers=auth_headers(make_doctor()))
        assert response.status_code == 403
        assert response.get_json()['error'] == 'Non autorizzato'


class TestRespondToPrescription:
    """PUT /api/prescriptions"""

    @pytest.fixture
    def pending_request(self, linked_patient, approved_doctor, make_prescription_request):
        return make_prescription_request(linked_patient, approved_doctor, medications=('Ramipril', 'Lasix'))

    def respond(self, client, headers, request_id, response, message='Va bene'):
        return client.put('/api/prescriptions', json={
            'requestId': request_id, 'response': response, 'doctorResponse': message
        }, headers=headers)

    def test_approve_issues_prescriptions(self, client, approved_doctor, linked_patient, pending_request,
                                          auth_headers, db_session):
        response = self.respond(client, auth_headers(approved_doctor), pending_request.id, 'approved',
                                'Una compressa al mattino')
        assert response.status_code == 200
        assert response.get_json() == {
            'success': True, 'message': 'Prescrizione approvata', 'response_type': 'approved'
        }

        db_session.refresh(pending_request)
        assert pending_request.status == 'approved'
        assert pending_request.doctor_response == 'Una compressa al mattino'
        assert pending_request.responded_at is not None

        prescriptions = Prescription.query.filter_by(request_id=pending_request.id).order_by(Prescription.id).all()
        assert [p.medication for p in prescriptions] == ['Ramipril', 'Lasix']
        assert all(p.patient_id == linked_patient.id for p in prescriptions)
        assert all(p.instructions == 'Una compressa al mattino' for p in prescriptions)

        entry = AuditLog.query.filter_by(action='prescription_approved').one()
        assert entry.user_id == approved_doctor.id
        assert entry.details['request_id'] == pending_request.id

    @pytest.mark.parametrize("answer,message", [
        ('rejected', 'Richiesta di prescrizione rifiutata'),
        ('requires_appointment', 'Richiesta chiusa: è necessario un appuntamento'),
    ])
    def test_closing_answers_issue_nothing(self, client, approved_doctor, pending_request, auth_headers,
                                           db_session, answer, message):
        response = self.respond(client, auth_headers(approved_doctor), pending_request.id, answer)
        assert response.status_code == 200
        assert response.get_json()['message'] == message
        db_session.refresh(pending_request)
        assert pending_request.status == answer
        assert Prescription.query.count() == 0

    def test_answer_only_once(self, client, approved_doctor, pending_request, auth_headers):
        headers = auth_headers(approved_doctor)
        self.respond(client, headers, pending_request.id, 'rejected')
        response = self.respond(client, headers, pending_request.id, 'approved')
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Richiesta già gestita'
        assert Prescription.query.count() == 0

    def test_other_doctor(self, client, make_doctor, pending_request, auth_headers):
        response = self.respond(client, auth_headers(make_doctor()), pending_request.id, 'approved')
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Non autorizzato a rispondere a questa richiesta'

    def test_invalid_response_type(self, client, approved_doctor, pending_request, auth_headers):
        response = self.respond(client, auth_headers(approved_doctor), pending_request.id, 'forse')
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Tipo di risposta non valido'

    def test_doctor_message_required(self, client, approved_doctor, pending_request, auth_headers):
        response = self.respond(client, auth_headers(approved_doctor), pending_request.id, 'approved', '  ')
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Request ID, risposta e messaggio del dottore sono obbligatori'

    @pytest.mark.parametrize("request_id", [True, 2.5, 'abc', 9999])
    def test_unknown_request(self, client, approved_doctor, pending_request, auth_headers, request_id):
        response = self.respond(client, auth_headers(approved_doctor), request_id, 'approved')
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Richiesta non trovata'
