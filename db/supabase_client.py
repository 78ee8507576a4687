from supabase import create_client, Client, ClientOptions
from config import SUPABASE_CONFIG
from errors import ConfigurationError
import logging

logger = logging.getLogger(__name__)


class SupabaseInitializer:
    def __init__(self, supabase_url=None, anon_key=None):
        # Explicit arguments win over the environment
        self.supabase_url = supabase_url if supabase_url else SUPABASE_CONFIG.get('url')
        self.anon_key = anon_key if anon_key else SUPABASE_CONFIG.get('key')

        if not self.supabase_url or not self.anon_key:
            raise ConfigurationError('Missing Supabase URL or anon key; set SUPABASE_URL and SUPABASE_ANON_KEY')

        # The anon key only identifies the project; row-level rules decide
        # what each signed-in identity may read or write.
        # One client per request: no background token refresh, no stored session
        self.supabase: Client = create_client(
            self.supabase_url,
            self.anon_key,
            options=ClientOptions(auto_refresh_token=False, persist_session=False),
        )
        logger.debug(f"Supabase client initialized with URL: {self.supabase_url}")


def default_client_factory():
    """Build a fresh client from SUPABASE_CONFIG, one per request."""
    return SupabaseInitializer().supabase


def authorize_client(supabase_client, access_token):
    """Scope table and storage calls of the client to the caller's JWT."""
    supabase_client.options.headers.update({
        "Authorization": f"Bearer {access_token}"
    })
    return supabase_client
