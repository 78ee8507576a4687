"""
Error taxonomy for the faculty portal.

Every failure the portal reports to a visitor is a ``PortalError``. The
taxonomy is flat and presentation oriented: each subclass only fixes the
HTTP status and a default notification title. Backend messages are carried
through ``message`` as free text.
"""


class PortalError(Exception):
    """Base class for errors rendered as a user-visible notification."""
    status_code = 500
    title = 'Something went wrong'

    def __init__(self, message, title=None, status_code=None):
        super().__init__(message)
        self.message = message
        if title is not None:
            self.title = title
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self):
        return {
            'status': 'error',
            'title': self.title,
            'message': self.message,
        }


class ConfigurationError(PortalError):
    title = 'Backend is not configured'


class AuthenticationError(PortalError):
    status_code = 401
    title = 'User not authenticated'


class RoleError(PortalError):
    status_code = 403
    title = 'Not available for your role'


class ValidationError(PortalError):
    status_code = 400
    title = 'Please fill all required fields'

    def __init__(self, message, fields=None, title=None):
        super().__init__(message, title=title)
        self.fields = list(fields or [])

    def to_dict(self):
        data = super().to_dict()
        if self.fields:
            data['fields'] = self.fields
        return data


class UploadError(PortalError):
    title = 'Error uploading file'


class InsertError(PortalError):
    title = 'Error saving record'


class FetchError(PortalError):
    title = 'Error fetching records'


class SessionResolutionError(PortalError):
    status_code = 503
    title = 'Could not load your session'


class RequestTransitionError(PortalError):
    status_code = 409
    title = 'Request already decided'
