from flask import Blueprint, jsonify, request, send_file
from datetime import date
from io import BytesIO
import logging

from apis.auth_api import get_portal_session, json_body, require_role
from db.profile_operations import ProfileOperations
from db.record_operations import RecordOperations
from errors import ValidationError
from report_utils.bib_export import publications_to_bibtex
from report_utils.record_filters import (
    ALL_CATEGORIES, ALL_FACULTY, DATE_RANGES,
    date_range_cutoff, records_frame, filter_by_search, filter_by_faculty, filter_by_dates, frame_to_records,
)
from report_utils.report_builder import (
    REPORT_TYPES, OUTPUT_FORMATS, combine_records, build_report, render_report, analytics,
)
from schemas import RECORD_TYPES, HOD_CATEGORIES, FACULTY_DATA_CATEGORIES
from session import ROLE_HOD

logger = logging.getLogger(__name__)

# Department-head views over every faculty member's records
hod = Blueprint('hod', __name__, url_prefix='/api/hod')


def _selected_categories(category):
    if not category or category == ALL_CATEGORIES:
        return list(FACULTY_DATA_CATEGORIES)
    if category not in FACULTY_DATA_CATEGORIES:
        raise ValidationError(f"Unknown category '{category}'", fields=['category'], title='Invalid filter')
    return [category]


@hod.route('/faculty-data', methods=['GET'])
@require_role(ROLE_HOD)
def faculty_data():
    """
    Records of all faculty, filtered

    Query args:
        search: case-insensitive substring over titles, organizers and faculty name
        faculty: faculty display name, "All Faculty" for everyone
        category: display name from FACULTY_DATA_CATEGORIES, "All Categories" for all
        date_range: last30days / last3months / last6months / lastyear / all
    """
    search = (request.args.get('search') or '').strip()
    faculty_name = request.args.get('faculty') or ALL_FACULTY
    categories = _selected_categories(request.args.get('category'))
    try:
        created_since = date_range_cutoff(request.args.get('date_range'))
    except ValueError as e:
        raise ValidationError(str(e), fields=['date_range'], title='Invalid filter') from e

    tracker = get_portal_session()
    keys = [HOD_CATEGORIES[name] for name in categories]
    rows_by_key = RecordOperations(tracker.supabase).list_many(keys, created_since)
    names = ProfileOperations(tracker.supabase).names_by_id()

    data = {}
    for name, key in zip(categories, keys):
        frame = records_frame(rows_by_key[key], names)
        frame = filter_by_search(frame, search, RECORD_TYPES[key].search_fields)
        frame = filter_by_faculty(frame, faculty_name)
        data[name] = frame_to_records(frame)

    return jsonify({
        'status': 'success',
        'filters': {
            'search': search,
            'faculty': faculty_name,
            'category': request.args.get('category') or ALL_CATEGORIES,
            'date_range': request.args.get('date_range') or 'all',
        },
        'counts': {name: len(rows) for name, rows in data.items()},
        'data': data
    })


@hod.route('/faculty', methods=['GET'])
@require_role(ROLE_HOD)
def faculty_names():
    """Names for the faculty filter"""
    tracker = get_portal_session()
    profiles = ProfileOperations(tracker.supabase).list_profiles()
    names = sorted({p.full_name or p.email for p in profiles if p.full_name or p.email})
    return jsonify({
        'status': 'success',
        'data': [ALL_FACULTY] + names,
        'categories': [ALL_CATEGORIES] + list(FACULTY_DATA_CATEGORIES),
        'date_ranges': list(DATE_RANGES)
    })


@hod.route('/analytics', methods=['GET'])
@require_role(ROLE_HOD)
def get_analytics():
    tracker = get_portal_session()
    rows_by_key = RecordOperations(tracker.supabase).list_many(HOD_CATEGORIES.values())
    names = ProfileOperations(tracker.supabase).names_by_id()
    return jsonify({
        'status': 'success',
        'data': analytics(rows_by_key, names)
    })


@hod.route('/reports', methods=['GET'])
@require_role(ROLE_HOD)
def report_options():
    """Report types, formats and categories the report form offers"""
    return jsonify({
        'status': 'success',
        'report_types': [{'key': key, 'description': text} for key, text in REPORT_TYPES.items()],
        'formats': list(OUTPUT_FORMATS),
        'categories': list(HOD_CATEGORIES)
    })


def _as_list(value):
    if not value:
        return []
    if isinstance(value, str):
        return [item.strip() for item in value.split(',') if item.strip()]
    return list(value)


@hod.route('/reports', methods=['POST'])
@require_role(ROLE_HOD)
def generate_report():
    """
    Build a downloadable report

    JSON body:
        report_type: one of REPORT_TYPES
        format: csv / excel / json / bibtex
        faculty: optional list of faculty names
        categories: optional list of category display names
        date_from, date_to: optional ISO dates on the record date
    """
    data = json_body()
    report_type = data.get('report_type')
    output_format = data.get('format')
    if not report_type or not output_format:
        raise ValidationError(
            'Report type and format are required',
            fields=[name for name in ('report_type', 'format') if not data.get(name)],
            title='Please select report type and format',
        )
    if report_type not in REPORT_TYPES:
        raise ValidationError(f"Unknown report type '{report_type}'", fields=['report_type'], title='Invalid report')
    if output_format not in OUTPUT_FORMATS:
        raise ValidationError(f"Unknown format '{output_format}'", fields=['format'], title='Invalid report')

    faculty = [name for name in _as_list(data.get('faculty')) if name != ALL_FACULTY]
    categories = _as_list(data.get('categories')) or list(HOD_CATEGORIES)
    unknown = [name for name in categories if name not in HOD_CATEGORIES]
    if unknown:
        raise ValidationError(f"Unknown categories: {', '.join(unknown)}", fields=['categories'], title='Invalid report')
    date_from = data.get('date_from') or None
    date_to = data.get('date_to') or None

    tracker = get_portal_session()
    operations = RecordOperations(tracker.supabase)
    names = ProfileOperations(tracker.supabase).names_by_id()
    stamp = date.today().isoformat()

    if output_format == 'bibtex':
        # Only publications have a citation form
        publications = records_frame(operations.list_all(RECORD_TYPES['publications']), names)
        publications = filter_by_dates(publications, 'created_at', date_from, date_to)
        if faculty:
            publications = publications[publications['faculty_name'].isin(faculty)]
        content = publications_to_bibtex(frame_to_records(publications), names).encode('utf-8')
        mimetype, extension = OUTPUT_FORMATS['bibtex']
    else:
        rows_by_key = operations.list_many([HOD_CATEGORIES[name] for name in categories])
        combined = combine_records(rows_by_key, names, date_from, date_to)
        if faculty:
            combined = combined[combined['faculty_name'].isin(faculty)]
        report = build_report(report_type, combined)
        content, mimetype, extension = render_report(report, output_format, sheet_name=report_type)

    logger.info(f"Generated {report_type} report as {output_format} ({len(content)} bytes)")
    return send_file(
        BytesIO(content),
        mimetype=mimetype,
        as_attachment=True,
        download_name=f"{report_type}-report-{stamp}.{extension}",
    )
