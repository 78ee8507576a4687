from flask import Blueprint, jsonify, request
import logging

from apis.auth_api import get_portal_session, json_body, require_session
from db.record_operations import RecordOperations, get_record_type
from errors import ValidationError
from report_utils.bib_export import publications_to_bibtex, bibtex_to_text, CITATION_STYLES
from schemas import RECORD_TYPES

logger = logging.getLogger(__name__)

records = Blueprint('records', __name__, url_prefix='/api/records')


def _submitted_form(record_type):
    """Form fields from a multipart/urlencoded body or a JSON body"""
    if request.form or request.files:
        form = request.form.to_dict()
        for name in record_type.list_fields:
            values = request.form.getlist(name)
            if len(values) > 1:
                form[name] = values
        return form
    return json_body()


def _submitted_file():
    """The optional ``file`` part, None when no file was chosen"""
    upload = request.files.get('file')
    if upload is None or not upload.filename:
        return None
    return {
        'filename': upload.filename,
        'content': upload.read(),
        'content_type': upload.mimetype,
    }


@records.route('', methods=['GET'])
def list_record_types():
    """Form definitions of every record type"""
    return jsonify({
        'status': 'success',
        'data': [record_type.describe() for record_type in RECORD_TYPES.values()]
    })


@records.route('/<record_key>', methods=['GET'])
@require_session
def list_records(record_key):
    """Records of the signed-in faculty member, newest first"""
    record_type = get_record_type(record_key)
    tracker = get_portal_session()
    rows = RecordOperations(tracker.supabase).list_for_user(record_type, str(tracker.user.id))
    return jsonify({
        'status': 'success',
        'type': record_type.key,
        'data': rows
    })


@records.route('/<record_key>', methods=['POST'])
@require_session
def add_record(record_key):
    """
    Submit one record form

    Accepts multipart form data with an optional ``file`` part, or a JSON
    body without file. Steps: validate -> upload -> insert -> re-query.
    """
    record_type = get_record_type(record_key)
    tracker = get_portal_session()
    result = RecordOperations(tracker.supabase).submit(
        record_type,
        str(tracker.user.id),
        _submitted_form(record_type),
        _submitted_file(),
    )
    return jsonify({
        'status': 'success',
        'title': f"{record_type.label[0].upper()}{record_type.label[1:]} added",
        'message': f"Your {record_type.label} has been saved successfully.",
        'record': result['record'],
        'data': result['records']
    }), 201


@records.route('/publications/citations', methods=['GET'])
@require_session
def publication_citations():
    """Own publications as BibTeX and formatted references"""
    style = request.args.get('style', 'apa')
    if style not in CITATION_STYLES:
        raise ValidationError(f"Unsupported style, supported: {', '.join(CITATION_STYLES)}",
                              title='Unsupported citation style')

    tracker = get_portal_session()
    user_id = str(tracker.user.id)
    rows = RecordOperations(tracker.supabase).list_for_user(RECORD_TYPES['publications'], user_id)
    author = tracker.profile.full_name if tracker.profile else None
    bibtex = publications_to_bibtex(rows, {user_id: author} if author else {})
    return jsonify({
        'status': 'success',
        'style': style,
        'bibtex': bibtex,
        'data': bibtex_to_text(bibtex, style) if rows else []
    })
