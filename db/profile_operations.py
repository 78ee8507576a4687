from typing import List, Dict, Optional, Any
import logging

from errors import FetchError, InsertError, ValidationError
from schemas import Profile

logger = logging.getLogger(__name__)

EDITABLE_PROFILE_FIELDS = ('full_name', 'department', 'designation')


class ProfileOperations:
    """Profile table operations"""

    def __init__(self, supabase):
        self.supabase = supabase

    def get_profile(self, user_id: str) -> Optional[Profile]:
        """Profile row of an identity, None when it has none yet."""
        result = self.supabase.table('profiles') \
            .select('*') \
            .eq('id', user_id) \
            .limit(1) \
            .execute()
        return Profile.from_row(result.data[0]) if result.data else None

    def create_profile_from_identity(self, user) -> Profile:
        """Create the missing profile row from the identity's metadata.

        Args:
            user: auth user with ``id``, ``email`` and ``user_metadata``

        Returns:
            Profile: the created profile
        """
        metadata = getattr(user, 'user_metadata', None) or {}
        profile = Profile(
            id=str(user.id),
            email=user.email,
            full_name=metadata.get('full_name') or user.email,
        )
        row = {
            'id': profile.id,
            'email': profile.email,
            'full_name': profile.full_name,
        }
        result = self.supabase.table('profiles').insert(row).execute()
        logger.info(f"Created missing profile for {profile.id}")
        return Profile.from_row(result.data[0]) if result.data else profile

    def update_profile(self, user_id: str, changes: Dict[str, Any]) -> Profile:
        update_data = {
            name: (value.strip() if isinstance(value, str) else value)
            for name, value in changes.items()
            if name in EDITABLE_PROFILE_FIELDS
        }
        if not update_data:
            raise ValidationError(
                f"Nothing to update, editable fields: {', '.join(EDITABLE_PROFILE_FIELDS)}",
                title='Nothing to update',
            )
        if 'full_name' in update_data and not update_data['full_name']:
            raise ValidationError('full_name must not be empty', fields=['full_name'])

        try:
            result = self.supabase.table('profiles').update(update_data).eq('id', user_id).execute()
        except Exception as e:
            logger.error(f"Updating profile {user_id} failed: {e}")
            raise InsertError(str(e), title='Error updating profile') from e
        if not result.data:
            raise InsertError(f"Profile {user_id} not found", title='Error updating profile', status_code=404)
        return Profile.from_row(result.data[0])

    def list_profiles(self) -> List[Profile]:
        try:
            result = self.supabase.table('profiles').select('*').order('full_name').execute()
        except Exception as e:
            logger.error(f"Fetching profiles failed: {e}")
            raise FetchError(str(e), title='Error fetching faculty list') from e
        return [Profile.from_row(row) for row in result.data or []]

    def list_faculty(self, exclude_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """Faculty selectable as request targets, excluding the caller."""
        return [
            {'id': p.id, 'full_name': p.full_name, 'department': p.department}
            for p in self.list_profiles()
            if p.id != exclude_id
        ]

    def names_by_id(self) -> Dict[str, str]:
        return {p.id: (p.full_name or p.email or 'Unknown') for p in self.list_profiles()}
