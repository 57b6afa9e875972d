from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from salonpos.main import app


@pytest.fixture()
def client(db):
    return TestClient(app)


@pytest.fixture()
def headers(client):
    r = client.post('/auth/register', json={
        'email': 'dono@barbearia.com.br',
        'password': 'secret',
        'name': 'Dono',
        'tenant_name': 'Barbearia',
        'tenant_slug': 'barbearia'
    })
    assert r.status_code == 200
    assert 'access_token' in r.json()

    # Login against the same tenant
    r = client.post('/auth/login', json={
        'email': 'dono@barbearia.com.br',
        'password': 'secret'
    }, headers={'X-Tenant-ID': 'barbearia'})
    assert r.status_code == 200
    access = r.json()['access_token']
    return {'Authorization': f'Bearer {access}', 'X-Tenant-ID': 'barbearia'}


def setup_catalog(client, headers):
    r = client.post('/catalog/professionals', json={
        'name': 'Carlos',
        'commission_rate': '40',
        'work_start': '09:00',
        'work_end': '20:00',
        'lunch_start': '12:00',
        'lunch_end': '13:00'
    }, headers=headers)
    assert r.status_code == 200
    professional_id = r.json()['id']

    r = client.post('/catalog/services', json={
        'name': 'Corte', 'price': '50', 'duration_minutes': 30, 'category': 'Cabelo'
    }, headers=headers)
    assert r.status_code == 200
    return professional_id, r.json()['id']


def test_me_and_seeded_catalog(client, headers):
    r = client.get('/auth/me', headers=headers)
    assert r.status_code == 200
    assert r.json()['role'] == 'owner'

    r = client.get('/catalog/payment-methods', headers=headers)
    assert r.status_code == 200
    assert {m['type'] for m in r.json()} == {'cash', 'pix', 'credit', 'debit', 'discount'}

    r = client.get('/catalog/operating-hours', headers=headers)
    assert len(r.json()) == 7


def test_requests_need_a_token_for_the_same_tenant(client, headers):
    assert client.get('/catalog/services', headers={'X-Tenant-ID': 'barbearia'}).status_code == 401
    assert client.get('/catalog/services').status_code == 400


def test_booking_checkout_and_cash_flow(client, headers):
    professional_id, service_id = setup_catalog(client, headers)
    booking = {
        'professional_id': professional_id,
        'start_time': '2030-01-07T10:00:00',
        'service_ids': [service_id],
        'client_name': 'Maria',
        'phone': '11977776666'
    }

    r = client.post('/appointments/', json=booking, headers=headers)
    assert r.status_code == 201
    appointment_id = r.json()['id']

    # Same professional, overlapping time
    r = client.post('/appointments/', json={**booking, 'start_time': '2030-01-07T10:15:00'}, headers=headers)
    assert r.status_code == 409

    methods = {m['type']: m['id'] for m in client.get('/catalog/payment-methods', headers=headers).json()}
    payment = {'tenders': [{'method_id': methods['cash'], 'amount': '50'}]}

    # Register closed
    r = client.post(f'/checkout/{appointment_id}', json=payment, headers=headers)
    assert r.status_code == 409
    assert 'closed' in r.json()['detail']

    r = client.post('/cash/open', json={'opening_balance': '100'}, headers=headers)
    assert r.status_code == 200

    r = client.post(f'/checkout/{appointment_id}/preview', json={'tenders': []}, headers=headers)
    assert Decimal(r.json()['allocation']['remaining']) == Decimal('50')

    r = client.post(f'/checkout/{appointment_id}', json={'tenders': [{'method_id': methods['cash'], 'amount': '20'}]}, headers=headers)
    assert r.status_code == 400

    r = client.post(f'/checkout/{appointment_id}', json=payment, headers=headers)
    assert r.status_code == 200
    assert r.json()['appointment']['status'] == 'COMPLETED'
    assert r.json()['ledger_entries'] == 1

    r = client.get('/cash/current', headers=headers)
    summary = r.json()['summary']
    assert Decimal(summary['cash_in_hand']) == Decimal('150')

    r = client.get('/commissions/', headers=headers)
    assert Decimal(r.json()[0]['commission_amount_snapshot']) == Decimal('20')

    r = client.get(f'/status-history/appointments/{appointment_id}', headers=headers)
    assert [h['new_status'] for h in r.json()] == ['COMPLETED', 'SCHEDULED']


def test_agenda_grid_and_public_booking(client, headers):
    professional_id, service_id = setup_catalog(client, headers)

    r = client.get('/public/barbearia/slots', params={'day': '2030-01-07', 'service_ids': [service_id]})
    assert r.status_code == 200
    assert '2030-01-07T09:00:00' in r.json()

    r = client.post('/public/barbearia/book', json={
        'start_time': '2030-01-07T09:00:00',
        'service_ids': [service_id],
        'client_name': 'Ana',
        'phone': '11911112222'
    })
    assert r.status_code == 201
    assert r.json()['professional_id'] == professional_id

    r = client.get('/agenda/grid', params={'day': '2030-01-07'}, headers=headers)
    assert r.status_code == 200
    cells = r.json()['columns'][0]['cells']
    assert cells[0]['reason'] == 'BOOKED'

    assert client.get('/public/nowhere/services').status_code == 404


def test_public_booking_outside_offered_slots_is_refused(client, headers):
    professional_id, service_id = setup_catalog(client, headers)
    request = {'service_ids': [service_id], 'client_name': 'Ana', 'phone': '11911112222'}

    # Sunday is closed
    r = client.get('/public/barbearia/slots', params={'day': '2030-01-06', 'service_ids': [service_id]})
    assert r.json() == []
    r = client.post('/public/barbearia/book', json={**request, 'start_time': '2030-01-06T10:00:00'})
    assert r.status_code == 409
    assert r.json()['detail'] == 'Time slot no longer available'

    # Lunch break and off-hours for an explicit professional
    for start in ('2030-01-07T12:00:00', '2030-01-07T03:00:00', '2030-01-07T20:00:00'):
        r = client.post('/public/barbearia/book', json={
            **request, 'start_time': start, 'professional_id': professional_id
        })
        assert r.status_code == 409

    r = client.get('/appointments/', params={'day': '2030-01-07'}, headers=headers)
    assert r.status_code == 200
    assert r.json() == []
    r = client.get('/appointments/', params={'day': '2030-01-06'}, headers=headers)
    assert r.json() == []

    r = client.post('/public/barbearia/book', json={
        **request, 'start_time': '2030-01-07T13:00:00', 'professional_id': professional_id
    })
    assert r.status_code == 201
