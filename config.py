# Portal configuration
import os
from dotenv import load_dotenv

load_dotenv(os.getenv('PORTAL_ENV_FILE', '.env'))

SUPABASE_CONFIG = {
    'url': os.getenv('SUPABASE_URL'),
    'key': os.getenv('SUPABASE_ANON_KEY'),
    'files_bucket_name': os.getenv('SUPABASE_FILES_BUCKET', 'academic-files'),
}

# Role flag only drives which workspace is shown; row-level rules in the
# backend are the real access control.
PORTAL_CONFIG = {
    'hod_email': os.getenv('PORTAL_HOD_EMAIL'),
    'app_name': os.getenv('PORTAL_APP_NAME', 'University Academic Portal'),
}

# Flask
FLASK_CONFIG = {
    'host': os.getenv('FLASK_HOST', '0.0.0.0'),
    'port': int(os.getenv('FLASK_PORT', 5000)),
    'debug': os.getenv('FLASK_DEBUG', 'False').lower() == 'true'
}
