"""
Session and role resolution.

A ``SessionTracker`` follows one visitor's authentication state for the
lifetime of its owner (one Flask request). Its states are::

    loading -> ready (signed in, with role) | ready (anonymous) | error
    error   -> loading                        on retry()
    ready   -> ready                          on every auth-change event

Auth-change events re-derive the user and role without going back to
``loading``. After ``close()`` the tracker is dead: late results of remote
calls and late auth events are dropped.

The role computed here only selects which workspace is shown. What an
identity may read or write is decided by the backend's row-level rules.
"""

from typing import Dict, Optional, Any
import logging

from db.profile_operations import ProfileOperations
from db.supabase_client import authorize_client
from errors import AuthenticationError

logger = logging.getLogger(__name__)

LOADING = 'loading'
READY = 'ready'
ERROR = 'error'

ROLE_HOD = 'hod'
ROLE_FACULTY = 'faculty'

SIGNED_OUT = 'SIGNED_OUT'


def derive_role(email: Optional[str], privileged_email: Optional[str]) -> str:
    """Department head when the profile email equals the privileged address.

    Strict equality, no case folding; a missing email on either side never
    grants the role.
    """
    if email and privileged_email and email == privileged_email:
        return ROLE_HOD
    return ROLE_FACULTY


class SessionTracker:
    """Current user, derived role and loading/error state of one visitor."""

    def __init__(self, supabase, privileged_email: Optional[str] = None):
        self.supabase = supabase
        self.privileged_email = privileged_email
        self.profiles = ProfileOperations(supabase)

        self.status = LOADING
        self.user = None
        self.profile = None
        self.role = None
        self.error = None
        self.access_token = None
        self.retry_count = 0

        self._alive = True
        self._subscription = None
        self._auth_events = 0

    # -- state ---------------------------------------------------------------

    @property
    def is_authenticated(self) -> bool:
        return self.status == READY and self.user is not None

    @property
    def is_hod(self) -> bool:
        return self.is_authenticated and self.role == ROLE_HOD

    @property
    def alive(self) -> bool:
        return self._alive

    @property
    def workspace(self) -> Optional[str]:
        """Route of the visitor's workspace, None when anonymous."""
        if not self.is_authenticated:
            return None
        return '/hod' if self.is_hod else '/dashboard'

    def to_dict(self) -> Dict[str, Any]:
        return {
            'status': self.status,
            'user': {
                'id': str(self.user.id),
                'email': self.user.email,
            } if self.user is not None else None,
            'profile': self.profile.to_dict() if self.profile is not None else None,
            'role': self.role,
            'is_hod': self.is_hod,
            'workspace': self.workspace,
            'error': self.error,
            'retry_count': self.retry_count,
        }

    # -- lifecycle -----------------------------------------------------------

    def start(self, access_token: Optional[str] = None):
        """Resolve the current session, then listen for auth changes.

        Args:
            access_token: bearer token of the visitor, if any

        Returns:
            SessionTracker: self, for chaining
        """
        if not self._alive:
            return self
        self.access_token = access_token
        self.status = LOADING
        self.error = None

        try:
            user = self._current_user(access_token)
            if not self._alive:
                return self
            profile = self._load_profile(user) if user is not None else None
            if not self._alive:
                return self
        except Exception as e:
            if not self._alive:
                return self
            logger.error(f"Resolving session failed: {e}")
            self.status = ERROR
            self.error = str(e)
            self.user = None
            self.profile = None
            self.role = None
            return self

        self._apply(user, profile)
        self.status = READY
        self._subscribe()
        return self

    def retry(self):
        """Re-run the whole resolution after an error."""
        self.retry_count += 1
        logger.info(f"Retrying session resolution, attempt {self.retry_count}")
        return self.start(self.access_token)

    def close(self):
        """Stop listening; later results and events are ignored."""
        if not self._alive:
            return
        self._alive = False
        if self._subscription is not None:
            try:
                self._subscription.unsubscribe()
            except Exception as e:
                logger.warning(f"Unsubscribing from auth changes failed: {e}")
            self._subscription = None
        logger.debug('Session tracker closed')

    # -- auth actions --------------------------------------------------------

    def sign_in(self, email: str, password: str):
        """Sign in with password; the auth-change event updates the state.

        The profile is loaded once per sign in. When that load fails the
        user stays None and ``error`` holds the reason.
        """
        events_before = self._auth_events
        response = self.supabase.auth.sign_in_with_password({
            "email": email,
            "password": password
        })
        if not response or not response.session:
            raise AuthenticationError('Invalid email or password', title='Error signing in')
        self.access_token = response.session.access_token
        if self._auth_events == events_before and self._alive:
            # Clients that do not emit SIGNED_IN still end up signed in
            self._on_auth_change('SIGNED_IN', response.session)
        return response

    def sign_up(self, email: str, password: str, full_name: Optional[str] = None):
        return self.supabase.auth.sign_up({
            "email": email,
            "password": password,
            "options": {
                "data": {
                    "full_name": full_name or email,
                }
            }
        })

    def sign_out(self):
        """Revoke the bearer token and sign out locally."""
        if self.access_token:
            try:
                self.supabase.auth.admin.sign_out(self.access_token)
            except Exception as e:
                logger.warning(f"Revoking access token failed: {e}")
        self.supabase.auth.sign_out()
        self.access_token = None
        if self.user is not None and self._alive:
            self._on_auth_change(SIGNED_OUT, None)

    # -- internals -----------------------------------------------------------

    def _current_user(self, access_token: Optional[str]):
        if access_token:
            try:
                response = self.supabase.auth.get_user(access_token)
            except Exception as e:
                # Expired or forged tokens make an anonymous visitor,
                # anything else is a resolution failure
                if getattr(e, 'status', None) in (401, 403):
                    logger.warning(f"Access token rejected: {e}")
                    return None
                raise
            if not response or not getattr(response, 'user', None):
                return None
            authorize_client(self.supabase, access_token)
            return response.user

        session = self.supabase.auth.get_session()
        return session.user if session else None

    def _load_profile(self, user):
        profile = self.profiles.get_profile(str(user.id))
        if profile is None:
            profile = self.profiles.create_profile_from_identity(user)
        return profile

    def _apply(self, user, profile):
        self.user = user
        self.profile = profile
        if user is None:
            self.role = None
        else:
            email = profile.email if profile is not None else None
            self.role = derive_role(email, self.privileged_email)

    def _subscribe(self):
        if self._subscription is not None:
            return
        self._subscription = self.supabase.auth.on_auth_state_change(self._on_auth_change)

    def _on_auth_change(self, event, session):
        if not self._alive:
            return
        self._auth_events += 1
        user = session.user if session is not None and event != SIGNED_OUT else None
        logger.info(f"Auth state changed: {event}")
        try:
            profile = self._load_profile(user) if user is not None else None
        except Exception as e:
            if self._alive:
                logger.error(f"Reloading profile after {event} failed: {e}")
                self.error = str(e)
            return
        if not self._alive:
            return
        if session is not None and getattr(session, 'access_token', None):
            self.access_token = session.access_token
        # status is kept, an auth change never re-enters loading
        self._apply(user, profile)
