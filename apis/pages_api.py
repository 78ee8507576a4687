from flask import Blueprint, current_app, jsonify, redirect, url_for
import logging

from apis.auth_api import get_portal_session
from db.profile_operations import ProfileOperations
from db.record_operations import RecordOperations
from errors import FetchError
from report_utils.report_builder import department_overview
from schemas import RECORD_TYPES, FACULTY_DATA_CATEGORIES, HOD_CATEGORIES
from session import ERROR

logger = logging.getLogger(__name__)

# Workspace views of the portal. Every view first looks at the session:
# anonymous visitors are sent to /auth, each role to its own workspace.
pages = Blueprint('pages', __name__)


def _session_error(tracker):
    return jsonify({
        'status': 'error',
        'title': 'Could not load your session',
        'message': tracker.error,
        'retry': url_for('auth.retry_session'),
    }), 503


@pages.route('/', methods=['GET'])
def landing():
    tracker = get_portal_session()
    if tracker.status == ERROR:
        return _session_error(tracker)
    if tracker.is_authenticated:
        return redirect(tracker.workspace)
    return jsonify({
        'view': 'landing',
        'title': current_app.config.get('PORTAL_APP_NAME'),
        'tagline': 'Faculty & Research Management System',
        'features': [
            'Record publications, patents, projects, awards and certifications',
            'Keep teaching materials, timetable and student projects in one place',
            'Department heads monitor activity and generate reports',
        ],
        'sign_in': url_for('pages.auth_page'),
    })


@pages.route('/auth', methods=['GET'])
def auth_page():
    tracker = get_portal_session()
    if tracker.status == ERROR:
        return _session_error(tracker)
    if tracker.is_authenticated:
        return redirect(tracker.workspace)
    return jsonify({
        'view': 'auth',
        'sign_in': url_for('auth.login'),
        'sign_up': url_for('auth.signup'),
        'fields': {
            'sign_in': ['email', 'password'],
            'sign_up': ['full_name', 'email', 'password'],
        },
    })


@pages.route('/dashboard', methods=['GET'])
def faculty_dashboard():
    tracker = get_portal_session()
    if tracker.status == ERROR:
        return _session_error(tracker)
    if not tracker.is_authenticated:
        return redirect(url_for('pages.auth_page'))
    if tracker.is_hod:
        return redirect(url_for('pages.hod_dashboard'))

    user_id = str(tracker.user.id)
    counts = RecordOperations(tracker.supabase).count_all_for_user(user_id)
    modules = [dict(RECORD_TYPES[key].describe(), **counts[key]) for key in RECORD_TYPES]
    return jsonify({
        'view': 'faculty',
        'profile': tracker.profile.to_dict() if tracker.profile else None,
        'modules': modules,
        'errors': [module['error'] for module in modules if 'error' in module],
        'logout': url_for('auth.logout'),
    })


@pages.route('/hod', methods=['GET'])
def hod_dashboard():
    tracker = get_portal_session()
    if tracker.status == ERROR:
        return _session_error(tracker)
    if not tracker.is_authenticated:
        return redirect(url_for('pages.auth_page'))
    if not tracker.is_hod:
        return redirect(url_for('pages.faculty_dashboard'))

    keys = [HOD_CATEGORIES[name] for name in FACULTY_DATA_CATEGORIES]
    overview = None
    try:
        rows_by_key = RecordOperations(tracker.supabase).list_many(keys)
        faculty_count = len(ProfileOperations(tracker.supabase).list_profiles())
        overview = department_overview(rows_by_key, faculty_count)
    except FetchError as e:
        # The workspace still renders; the stats card shows the failure
        logger.error(f"Loading department overview failed: {e.message}")
        overview = {'error': e.to_dict()}

    return jsonify({
        'view': 'hod',
        'profile': tracker.profile.to_dict() if tracker.profile else None,
        'overview': overview,
        'sections': {
            'faculty_data': url_for('hod.faculty_data'),
            'reports': url_for('hod.report_options'),
            'analytics': url_for('hod.get_analytics'),
        },
        'logout': url_for('auth.logout'),
    })
