from flask import Blueprint, jsonify
import logging

from apis.auth_api import get_portal_session, json_body, require_session
from db.profile_operations import ProfileOperations
from db.request_operations import RequestOperations
from schemas import REQUEST_SECTIONS

logger = logging.getLogger(__name__)

# Profile of the signed-in identity and peer-to-peer access requests
faculty = Blueprint('faculty', __name__, url_prefix='/api')


@faculty.route('/profile', methods=['GET'])
@require_session
def get_profile():
    tracker = get_portal_session()
    return jsonify({
        'status': 'success',
        'data': tracker.profile.to_dict() if tracker.profile else None
    })


@faculty.route('/profile', methods=['PATCH'])
@require_session
def update_profile():
    """Update name, department or designation"""
    tracker = get_portal_session()
    profile = ProfileOperations(tracker.supabase).update_profile(
        str(tracker.user.id),
        json_body(),
    )
    tracker.profile = profile
    return jsonify({
        'status': 'success',
        'message': 'Profile updated',
        'data': profile.to_dict()
    })


@faculty.route('/faculty', methods=['GET'])
@require_session
def list_faculty():
    """Other faculty members, for the request form"""
    tracker = get_portal_session()
    return jsonify({
        'status': 'success',
        'data': ProfileOperations(tracker.supabase).list_faculty(exclude_id=str(tracker.user.id)),
        'sections': list(REQUEST_SECTIONS)
    })


@faculty.route('/requests', methods=['GET'])
@require_session
def list_requests():
    """Incoming and outgoing requests of the signed-in identity"""
    tracker = get_portal_session()
    data = RequestOperations(tracker.supabase).list_requests(str(tracker.user.id))
    return jsonify({
        'status': 'success',
        'incoming': data['incoming'],
        'outgoing': data['outgoing']
    })


@faculty.route('/requests', methods=['POST'])
@require_session
def send_request():
    data = json_body()
    tracker = get_portal_session()
    operations = RequestOperations(tracker.supabase)
    user_id = str(tracker.user.id)
    row = operations.send_request(
        user_id,
        data.get('to_faculty_id'),
        data.get('requested_section'),
        data.get('notes'),
    )
    return jsonify({
        'status': 'success',
        'title': 'Request Sent',
        'message': 'Your request has been sent successfully.',
        'request': row,
        **operations.list_requests(user_id)
    }), 201


def _respond(request_id, decision):
    tracker = get_portal_session()
    operations = RequestOperations(tracker.supabase)
    user_id = str(tracker.user.id)
    row = operations.respond(request_id, user_id, decision)
    return jsonify({
        'status': 'success',
        'title': f"Request {decision}",
        'message': f"The request has been {decision} successfully.",
        'request': row,
        **operations.list_requests(user_id)
    })


@faculty.route('/requests/<request_id>/approve', methods=['POST'])
@require_session
def approve_request(request_id):
    return _respond(request_id, 'approved')


@faculty.route('/requests/<request_id>/reject', methods=['POST'])
@require_session
def reject_request(request_id):
    return _respond(request_id, 'rejected')
