import pytest

from db.request_operations import RequestOperations
from errors import RequestTransitionError, ValidationError


def test_send_request_validates(supabase, faculty_user, other_faculty):
    operations = RequestOperations(supabase)

    with pytest.raises(ValidationError) as exc_info:
        operations.send_request(faculty_user.id, '', 'Publications')
    assert exc_info.value.fields == ['to_faculty_id']

    with pytest.raises(ValidationError):
        operations.send_request(faculty_user.id, other_faculty.id, 'Salary Slips')

    with pytest.raises(ValidationError):
        operations.send_request(faculty_user.id, faculty_user.id, 'Publications')


def test_send_and_list_requests(supabase, backend, faculty_user, other_faculty):
    operations = RequestOperations(supabase)

    row = operations.send_request(faculty_user.id, other_faculty.id, 'Publications', '  for NAAC file ')

    assert row['status'] == 'pending'
    assert row['notes'] == 'for NAAC file'

    mine = operations.list_requests(faculty_user.id)
    assert mine['incoming'] == []
    assert mine['outgoing'][0]['to_faculty_name'] == 'Vikram Shah'

    theirs = operations.list_requests(other_faculty.id)
    assert theirs['incoming'][0]['from_faculty_name'] == 'Asha Rao'
    assert theirs['outgoing'] == []


def test_only_target_can_decide(supabase, faculty_user, other_faculty):
    operations = RequestOperations(supabase)
    row = operations.send_request(faculty_user.id, other_faculty.id, 'Projects')

    with pytest.raises(RequestTransitionError):
        operations.respond(row['id'], faculty_user.id, 'approved')

    decided = operations.respond(row['id'], other_faculty.id, 'approved')
    assert decided['status'] == 'approved'


def test_decided_request_is_never_overwritten(supabase, backend, faculty_user, other_faculty):
    operations = RequestOperations(supabase)
    row = operations.send_request(faculty_user.id, other_faculty.id, 'Awards')
    operations.respond(row['id'], other_faculty.id, 'rejected')

    with pytest.raises(RequestTransitionError):
        operations.respond(row['id'], other_faculty.id, 'approved')

    stored = next(r for r in backend.rows('faculty_requests') if r['id'] == row['id'])
    assert stored['status'] == 'rejected'


def test_unknown_decision(supabase):
    with pytest.raises(ValidationError):
        RequestOperations(supabase).respond('r1', 'u1', 'maybe')


def test_request_endpoints(client, backend, faculty_user, other_faculty, faculty_headers, bearer):
    response = client.get('/api/faculty', headers=faculty_headers)
    assert [f['full_name'] for f in response.get_json()['data']] == ['Vikram Shah']

    response = client.post('/api/requests', headers=faculty_headers, json={
        'to_faculty_id': other_faculty.id,
        'requested_section': 'Publications',
    })
    assert response.status_code == 201
    request_id = response.get_json()['request']['id']
    assert len(response.get_json()['outgoing']) == 1

    target_headers = bearer(other_faculty)
    response = client.post(f"/api/requests/{request_id}/approve", headers=target_headers)
    assert response.status_code == 200
    assert response.get_json()['incoming'][0]['status'] == 'approved'

    response = client.post(f"/api/requests/{request_id}/reject", headers=target_headers)
    assert response.status_code == 409
    assert response.get_json()['title'] == 'Request already decided'

    response = client.get('/api/requests', headers=faculty_headers)
    assert response.get_json()['outgoing'][0]['status'] == 'approved'
