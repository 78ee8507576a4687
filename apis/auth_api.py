from functools import wraps
from flask import Blueprint, current_app, g, jsonify, request
import logging

from errors import PortalError, AuthenticationError, RoleError, SessionResolutionError, ValidationError
from session import SessionTracker, ERROR

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__, url_prefix='/api/auth')


def get_bearer_token():
    auth_header = request.headers.get('Authorization')
    if not auth_header:
        return None
    token = auth_header.replace('Bearer ', '').strip()
    return token or None


def json_body():
    """JSON object of the request body, {} when there is none"""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object', title='Invalid request body')
    return data


def get_portal_session(resolve=True):
    """
    Session tracker of the current request, started on first use

    Args:
        resolve: False creates the tracker without resolving it yet

    Returns:
        SessionTracker: resolved session (ready, anonymous or error)
    """
    tracker = g.get('portal_session')
    if tracker is None:
        client_factory = current_app.config['SUPABASE_CLIENT_FACTORY']
        tracker = SessionTracker(client_factory(), current_app.config.get('PORTAL_HOD_EMAIL'))
        g.portal_session = tracker
        if resolve:
            tracker.start(get_bearer_token())
        else:
            tracker.access_token = get_bearer_token()
    return tracker


def close_portal_session(exc=None):
    """Teardown hook: unsubscribe the request's tracker."""
    tracker = g.pop('portal_session', None)
    if tracker is not None:
        tracker.close()


def require_session(view):
    """Reject JSON calls without a signed-in identity."""
    @wraps(view)
    def wrapper(*args, **kwargs):
        tracker = get_portal_session()
        if tracker.status == ERROR:
            raise SessionResolutionError(tracker.error or 'Session could not be resolved')
        if not tracker.is_authenticated:
            raise AuthenticationError('Please sign in to continue')
        return view(*args, **kwargs)
    return wrapper


def require_role(role):
    """Reject JSON calls from the other workspace's role."""
    def decorator(view):
        @wraps(view)
        @require_session
        def wrapper(*args, **kwargs):
            tracker = get_portal_session()
            if tracker.role != role:
                raise RoleError(f"This area is only available to the {role} workspace")
            return view(*args, **kwargs)
        return wrapper
    return decorator


def _credentials():
    data = json_body()
    email = (data.get('email') or '').strip()
    password = data.get('password') or ''
    if not email or not password:
        raise ValidationError('Email and password are required', fields=[
            name for name, value in (('email', email), ('password', password)) if not value
        ])
    return data, email, password


@auth_bp.route('/health', methods=['GET'])
def check_health():
    """Auth module health check"""
    return jsonify({
        'module': 'auth',
        'status': 'healthy',
        'message': 'Auth module is running'
    })


@auth_bp.route('/signup', methods=['POST'])
def signup():
    """Create an account; the profile row is created on first sign in"""
    data, email, password = _credentials()
    tracker = get_portal_session()
    try:
        response = tracker.sign_up(email, password, (data.get('full_name') or '').strip() or None)
    except Exception as e:
        logger.error(f"Sign up failed for {email}: {e}")
        raise PortalError(str(e), title='Error creating account', status_code=400) from e

    if not response or not response.user:
        raise PortalError('Sign up failed', title='Error creating account')

    return jsonify({
        'status': 'success',
        'message': 'Account created successfully! Please check your email to verify your account.',
        'user': {
            'id': str(response.user.id),
            'email': response.user.email
        }
    }), 201


@auth_bp.route('/login', methods=['POST'])
def login():
    """Sign in with email and password"""
    data, email, password = _credentials()
    tracker = get_portal_session()
    try:
        response = tracker.sign_in(email, password)
    except PortalError:
        raise
    except Exception as e:
        logger.warning(f"Sign in failed for {email}: {e}")
        raise AuthenticationError(str(e), title='Error signing in') from e

    if tracker.user is None:
        raise SessionResolutionError(tracker.error or 'Profile could not be loaded',
                                     title='Could not load your profile')

    return jsonify({
        'status': 'success',
        'message': 'Welcome back to the Faculty Portal.',
        'user': {
            'id': str(response.user.id),
            'email': response.user.email
        },
        'session': {
            'access_token': response.session.access_token,
            'refresh_token': response.session.refresh_token
        },
        'role': tracker.role,
        'redirect': tracker.workspace,
    }), 200


@auth_bp.route('/logout', methods=['POST'])
def logout():
    """Sign out and revoke the bearer token"""
    tracker = get_portal_session()
    try:
        tracker.sign_out()
    except Exception as e:
        logger.error(f"Sign out failed: {e}")
        raise PortalError(str(e), title='Error signing out') from e

    return jsonify({
        'status': 'success',
        'message': 'Signed out',
        'redirect': '/'
    }), 200


@auth_bp.route('/session', methods=['GET'])
def get_session_state():
    """Current session state: loading/ready/error, user and role"""
    tracker = get_portal_session()
    status_code = 503 if tracker.status == ERROR else 200
    return jsonify(tracker.to_dict()), status_code


@auth_bp.route('/session/retry', methods=['POST'])
def retry_session():
    """Re-run session resolution after an error"""
    tracker = get_portal_session(resolve=False)
    tracker.retry()
    status_code = 503 if tracker.status == ERROR else 200
    return jsonify(tracker.to_dict()), status_code
