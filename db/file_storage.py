from typing import Optional
import logging
import time

from config import SUPABASE_CONFIG
from errors import UploadError

logger = logging.getLogger(__name__)


def _file_extension(filename: Optional[str]) -> str:
    """Extension of an uploaded file name, without the dot."""
    if not filename or '.' not in filename:
        return 'bin'
    return filename.rsplit('.', 1)[-1].lower() or 'bin'


def build_storage_path(user_id: str, category: str, filename: Optional[str], timestamp_ms: Optional[int] = None) -> str:
    """Object key ``{user_id}/{category}/{timestamp}.{extension}``"""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"{user_id}/{category}/{timestamp_ms}.{_file_extension(filename)}"


class DocumentStorage:
    """Certificates and documents stored in the portal's Supabase bucket"""

    def __init__(self, supabase, bucket_name=None):
        self.supabase = supabase
        self.bucket_name = bucket_name or SUPABASE_CONFIG['files_bucket_name']

    def upload(
            self,
            user_id: str,
            category: str,
            filename: Optional[str],
            content: bytes,
            content_type: Optional[str] = None,
    ) -> str:
        """Upload one document and return its public URL.

        Args:
            user_id: owning identity id
            category: storage folder of the record type, e.g. ``publications``
            filename: original file name, only its extension is kept
            content: file bytes
            content_type: MIME type reported by the browser

        Returns:
            str: publicly resolvable URL of the stored object

        Raises:
            UploadError: the bucket rejected the upload
        """
        path = build_storage_path(user_id, category, filename)
        try:
            bucket = self.supabase.storage.from_(self.bucket_name)
            bucket.upload(
                path=path,
                file=content,
                file_options={'content-type': content_type or 'application/octet-stream'}
            )
            public_url = bucket.get_public_url(path)
        except Exception as e:
            logger.error(f"Uploading {path} to bucket {self.bucket_name} failed: {e}")
            raise UploadError(str(e)) from e

        logger.info(f"Stored {len(content)} bytes at {path}")
        return public_url
