from typing import List, Dict, Optional, Any
import logging

from db.profile_operations import ProfileOperations
from errors import FetchError, InsertError, RequestTransitionError, ValidationError
from schemas import FacultyRequest, REQUEST_SECTIONS

logger = logging.getLogger(__name__)

DECISIONS = ('approved', 'rejected')


class RequestOperations:
    """Faculty request table operations

    A request starts ``pending`` and only its target can move it to
    ``approved`` or ``rejected``. Decided requests are never updated again.
    """

    def __init__(self, supabase, profiles: Optional[ProfileOperations] = None):
        self.supabase = supabase
        self.profiles = profiles or ProfileOperations(supabase)

    def send_request(self, from_id: str, to_id: str, section: str, notes: Optional[str] = None) -> Dict:
        """Ask another faculty member for visibility into one section.

        Args:
            from_id: requesting identity
            to_id: identity whose data is requested
            section: one of ``REQUEST_SECTIONS``
            notes: optional reason shown to the target

        Returns:
            dict: the inserted request row
        """
        missing = [name for name, value in (('to_faculty_id', to_id), ('requested_section', section)) if not value]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}", fields=missing)
        if section not in REQUEST_SECTIONS:
            raise ValidationError(
                f"requested_section must be one of: {', '.join(REQUEST_SECTIONS)}",
                fields=['requested_section'],
                title='Invalid choice',
            )
        if to_id == from_id:
            raise ValidationError('You cannot send a request to yourself', fields=['to_faculty_id'],
                                  title='Invalid request')

        faculty_request = FacultyRequest(
            from_faculty_id=from_id,
            to_faculty_id=to_id,
            requested_section=section,
            status='pending',
            notes=(notes or '').strip() or None,
        )
        row = {
            'from_faculty_id': faculty_request.from_faculty_id,
            'to_faculty_id': faculty_request.to_faculty_id,
            'requested_section': faculty_request.requested_section,
            'status': faculty_request.status,
            'notes': faculty_request.notes,
        }
        try:
            result = self.supabase.table('faculty_requests').insert(row).execute()
        except Exception as e:
            logger.error(f"Sending request {from_id} -> {to_id} failed: {e}")
            raise InsertError(str(e), title='Error sending request') from e
        logger.info(f"Request for {section} sent from {from_id} to {to_id}")
        return result.data[0] if result.data else row

    def list_requests(self, user_id: str) -> Dict[str, List[Dict]]:
        """Requests sent or received by the identity, newest first.

        Names come from the profile table, joined on the faculty ids.
        """
        try:
            result = self.supabase.table('faculty_requests') \
                .select('*') \
                .or_(f"from_faculty_id.eq.{user_id},to_faculty_id.eq.{user_id}") \
                .order('created_at', desc=True) \
                .execute()
            names = self.profiles.names_by_id()
        except FetchError:
            raise
        except Exception as e:
            logger.error(f"Fetching requests for {user_id} failed: {e}")
            raise FetchError(str(e), title='Error fetching requests') from e

        incoming, outgoing = [], []
        for row in result.data or []:
            row = dict(row)
            row['from_faculty_name'] = names.get(row.get('from_faculty_id'))
            row['to_faculty_name'] = names.get(row.get('to_faculty_id'))
            if row.get('to_faculty_id') == user_id:
                incoming.append(row)
            if row.get('from_faculty_id') == user_id:
                outgoing.append(row)
        return {'incoming': incoming, 'outgoing': outgoing}

    def respond(self, request_id: str, user_id: str, decision: str) -> Dict:
        """Approve or reject a pending request addressed to the identity.

        The update only matches a pending row targeted at ``user_id``, so a
        request that is already decided is left untouched.

        Raises:
            RequestTransitionError: no pending request matched
        """
        if decision not in DECISIONS:
            raise ValidationError(f"decision must be one of: {', '.join(DECISIONS)}", title='Invalid decision')
        try:
            result = self.supabase.table('faculty_requests') \
                .update({'status': decision}) \
                .eq('id', request_id) \
                .eq('to_faculty_id', user_id) \
                .eq('status', 'pending') \
                .execute()
        except Exception as e:
            logger.error(f"Updating request {request_id} failed: {e}")
            raise InsertError(str(e), title='Error updating request') from e

        if not result.data:
            logger.warning(f"Request {request_id} is not pending for {user_id}, {decision} ignored")
            raise RequestTransitionError(f"Request {request_id} is not a pending request addressed to you")
        logger.info(f"Request {request_id} {decision} by {user_id}")
        return result.data[0]
