from typing import List, Dict, Optional, Any
from dataclasses import asdict
import logging

import pydantic

from db.file_storage import DocumentStorage
from errors import ValidationError, InsertError, FetchError
from forms import RECORD_FORMS
from schemas import RecordType, RECORD_TYPES

logger = logging.getLogger(__name__)

# Columns the database fills in on insert
_GENERATED_COLUMNS = ('id', 'created_at', 'updated_at')

# pydantic error type prefix -> notification title
_ERROR_TITLES = (
    ('literal', 'Invalid choice'),
    ('date', 'Invalid date'),
    ('time', 'Invalid time'),
    ('float', 'Invalid amount'),
    ('finite', 'Invalid amount'),
    ('greater', 'Invalid amount'),
    ('range', 'Invalid range'),
)


def get_record_type(key: str) -> RecordType:
    record_type = RECORD_TYPES.get(key)
    if record_type is None:
        raise ValidationError(
            f"Unknown record type '{key}', supported: {', '.join(RECORD_TYPES)}",
            title='Unknown record type',
        )
    return record_type


def _form_error(e: pydantic.ValidationError) -> ValidationError:
    """Translate a form model error into the portal's notification."""
    errors = e.errors()
    missing = [str(error['loc'][0]) for error in errors if error['type'] == 'missing']
    if missing:
        return ValidationError(f"Missing required fields: {', '.join(missing)}", fields=missing)

    fields, messages = [], []
    for error in errors:
        if error['type'] == 'range':
            names = [error['ctx']['start'], error['ctx']['end']]
        else:
            names = [str(part) for part in error['loc'][:1]]
        fields.extend(name for name in names if name not in fields)
        prefix = f"{names[0]}: " if error['type'] != 'range' and names else ''
        messages.append(f"{prefix}{error['msg']}")

    title = next(
        (text for kind, text in _ERROR_TITLES if errors[0]['type'].startswith(kind)),
        'Invalid value',
    )
    return ValidationError('; '.join(messages), fields=fields, title=title)


def validate_record(record_type: RecordType, form: Dict[str, Any]) -> Dict[str, Any]:
    """Check a submitted form and return the clean column values.

    Args:
        record_type: form definition from ``RECORD_TYPES``
        form: submitted fields, unknown keys are ignored

    Returns:
        dict: column -> JSON-ready value for every field of the form
        (empty optionals become None)

    Raises:
        ValidationError: a required field is empty or a value is malformed
    """
    try:
        clean = RECORD_FORMS[record_type.key].model_validate(form)
    except pydantic.ValidationError as e:
        raise _form_error(e) from e
    return clean.model_dump(mode='json')


class RecordOperations:
    """Faculty record table operations"""

    def __init__(self, supabase, storage: Optional[DocumentStorage] = None):
        self.supabase = supabase
        self.storage = storage or DocumentStorage(supabase)

    def list_for_user(self, record_type: RecordType, user_id: str) -> List[Dict]:
        """Rows of one record type owned by the identity, newest first."""
        try:
            result = self.supabase.table(record_type.table) \
                .select('*') \
                .eq('user_id', user_id) \
                .order(record_type.order_by, desc=True) \
                .execute()
            return result.data or []
        except Exception as e:
            logger.error(f"Fetching {record_type.table} for {user_id} failed: {e}")
            raise FetchError(str(e), title=f"Error fetching {record_type.label}s") from e

    def list_all(self, record_type: RecordType, created_since: Optional[str] = None) -> List[Dict]:
        """Rows of every faculty member that the caller's row rules expose.

        Args:
            record_type: form definition
            created_since: ISO date, only rows created on or after it
        """
        try:
            query = self.supabase.table(record_type.table).select('*')
            if created_since:
                query = query.gte('created_at', created_since)
            result = query.order('created_at', desc=True).execute()
            return result.data or []
        except Exception as e:
            logger.error(f"Fetching all {record_type.table} failed: {e}")
            raise FetchError(str(e), title=f"Error fetching {record_type.label}s") from e

    def list_many(self, keys, created_since: Optional[str] = None) -> Dict[str, List[Dict]]:
        return {key: self.list_all(RECORD_TYPES[key], created_since) for key in keys}

    def count_for_user(self, record_type: RecordType, user_id: str) -> int:
        result = self.supabase.table(record_type.table) \
            .select('id', count='exact') \
            .eq('user_id', user_id) \
            .execute()
        return result.count or 0

    def count_all_for_user(self, user_id: str) -> Dict[str, Dict[str, Any]]:
        """Per-module counters of the faculty workspace.

        Each module gets ``{'count': n}``. A failing table gets
        ``{'count': None, 'error': notification}`` so one broken table does
        not hide the others and is never shown as an empty module.
        """
        counts = {}
        for key, record_type in RECORD_TYPES.items():
            try:
                counts[key] = {'count': self.count_for_user(record_type, user_id)}
            except Exception as e:
                logger.error(f"Counting {record_type.table} for {user_id} failed: {e}")
                error = FetchError(str(e), title=f"Error fetching {record_type.label}s")
                counts[key] = {'count': None, 'error': error.to_dict()}
        return counts

    def insert(self, record_type: RecordType, row: Dict[str, Any]) -> Dict:
        try:
            result = self.supabase.table(record_type.table).insert(row).execute()
        except Exception as e:
            logger.error(f"Inserting into {record_type.table} failed: {e}")
            raise InsertError(str(e), title=f"Error adding {record_type.label}") from e
        return result.data[0] if result.data else row

    def submit(
            self,
            record_type: RecordType,
            user_id: str,
            form: Dict[str, Any],
            upload: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Validate, upload, insert, then re-query the identity's rows.

        Args:
            record_type: form definition
            user_id: owning identity id
            form: submitted fields
            upload: optional ``{'filename', 'content', 'content_type'}``

        Returns:
            dict: ``{'record': inserted row, 'records': refreshed list}``
        """
        clean = validate_record(record_type, form)

        document_url = None
        if upload is not None and record_type.document_column:
            document_url = self.storage.upload(
                user_id,
                record_type.storage_category,
                upload.get('filename'),
                upload['content'],
                upload.get('content_type'),
            )
        elif upload is not None:
            logger.warning(f"{record_type.table} takes no document, ignoring upload {upload.get('filename')}")

        if record_type.document_column:
            clean[record_type.document_column] = document_url

        record = record_type.model(user_id=user_id, **clean)
        row = {k: v for k, v in asdict(record).items() if k not in _GENERATED_COLUMNS}

        try:
            inserted = self.insert(record_type, row)
        except InsertError:
            if document_url:
                # Upload and insert are not transactional
                logger.warning(f"Insert into {record_type.table} failed, stored file left orphaned: {document_url}")
            raise
        logger.info(f"Added {record_type.label} for {user_id}")

        return {
            'record': inserted,
            'records': self.list_for_user(record_type, user_id),
        }
