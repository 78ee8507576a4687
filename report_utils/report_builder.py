"""
Department reports and analytics built with pandas.

All inputs are plain row lists as returned by the Supabase tables plus a
``user_id -> display name`` map; the outputs are DataFrames or JSON-ready
dicts. Nothing in here talks to the backend.
"""
from typing import Dict, List, Optional, Tuple
from datetime import date
from io import BytesIO
import pandas as pd

from report_utils.record_filters import records_frame, filter_by_dates, parse_dates, frame_to_records
from schemas import RECORD_TYPES, HOD_CATEGORIES, INDEX_TYPES

REPORT_TYPES = {
    'summary': 'Overall statistics and highlights',
    'detailed': 'Complete data with all entries',
    'faculty-wise': 'Individual faculty performance',
    'activity-wise': 'Category-based analysis',
    'comparative': 'Period-wise comparison',
    'analytics': 'Month by month activity',
}

OUTPUT_FORMATS = {
    'csv': ('text/csv', 'csv'),
    'excel': ('application/vnd.openxmlformats-officedocument.spreadsheetml.sheet', 'xlsx'),
    'json': ('application/json', 'json'),
    'bibtex': ('application/x-bibtex', 'bib'),
}

# record type -> (title column, detail column, kind column, amount column)
SUMMARY_COLUMNS = {
    'publications': ('paper_title', 'journal_conference_name', 'index_type', None),
    'fdp': ('title', 'organizer', None, None),
    'projects': ('title', 'funding_agency', None, 'funded_amount'),
    'awards': ('title', 'issuing_body', None, None),
    'patents': ('title', None, 'status', None),
    'workshops': ('event_name', 'organizer', None, None),
    'teaching_materials': ('title', 'course_name', 'material_type', None),
    'student_projects': ('project_title', None, 'project_type', None),
}

DETAIL_COLUMNS = ['category', 'faculty_name', 'title', 'detail', 'kind', 'amount', 'date', 'document_url', 'created_at']


def combine_records(rows_by_key: Dict[str, List[Dict]], names: Dict[str, str],
                    date_from: Optional[str] = None, date_to: Optional[str] = None) -> pd.DataFrame:
    """
    Flatten several record tables into one frame with shared columns

    Args:
        rows_by_key: record type key -> rows of its table
        names: user_id -> faculty display name
        date_from: keep records dated on or after this ISO date
        date_to: keep records dated on or before this ISO date

    Returns:
        DataFrame with DETAIL_COLUMNS
    """
    frames = []
    for key, rows in rows_by_key.items():
        record_type = RECORD_TYPES[key]
        data = filter_by_dates(records_frame(rows, names), record_type.date_column, date_from, date_to)
        if data.empty:
            continue
        title_col, detail_col, kind_col, amount_col = SUMMARY_COLUMNS[key]
        flat = pd.DataFrame({
            'category': category_name(key),
            'faculty_name': data['faculty_name'],
            'title': data.get(title_col),
            'detail': data[detail_col] if detail_col in data.columns else None,
            'kind': data[kind_col] if kind_col in data.columns else None,
            'amount': pd.to_numeric(data[amount_col], errors='coerce') if amount_col in data.columns else float('nan'),
            'date': data[record_type.date_column] if record_type.date_column in data.columns else None,
            'document_url': data[record_type.document_column]
            if record_type.document_column in data.columns else None,
            'created_at': data['created_at'] if 'created_at' in data.columns else None,
        }, index=data.index)
        frames.append(flat)
    if not frames:
        return pd.DataFrame(columns=DETAIL_COLUMNS)
    return pd.concat(frames, ignore_index=True)[DETAIL_COLUMNS]


def category_name(key: str) -> str:
    for name, record_key in HOD_CATEGORIES.items():
        if record_key == key:
            return name
    return RECORD_TYPES[key].label


def summary_report(data: pd.DataFrame) -> pd.DataFrame:
    if data.empty:
        return pd.DataFrame(columns=['category', 'records', 'faculty', 'total_funding'])
    grouped = data.groupby('category', sort=True)
    return pd.DataFrame({
        'records': grouped.size(),
        'faculty': grouped['faculty_name'].nunique(),
        'total_funding': grouped['amount'].sum(min_count=1).fillna(0),
    }).reset_index()


def faculty_wise_report(data: pd.DataFrame) -> pd.DataFrame:
    if data.empty:
        return pd.DataFrame(columns=['faculty_name', 'Total'])
    table = pd.pivot_table(
        data.fillna({'faculty_name': 'Unknown'}),
        index='faculty_name',
        columns='category',
        values='title',
        aggfunc='count',
        fill_value=0,
    )
    table['Total'] = table.sum(axis=1)
    table.columns.name = None
    return table.sort_values('Total', ascending=False).reset_index()


def activity_wise_report(data: pd.DataFrame) -> pd.DataFrame:
    if data.empty:
        return pd.DataFrame(columns=['category', 'kind', 'records'])
    return data.fillna({'kind': 'Unspecified'}) \
        .groupby(['category', 'kind']) \
        .size() \
        .reset_index(name='records')


def comparative_report(data: pd.DataFrame) -> pd.DataFrame:
    """Records per category per year of the record date."""
    if data.empty:
        return pd.DataFrame(columns=['category'])
    years = parse_dates(data['date'].fillna(data['created_at'])).dt.year
    table = pd.crosstab(data['category'], years.rename('year'))
    table.columns = [str(int(year)) for year in table.columns]
    return table.reset_index()


def monthly_report(data: pd.DataFrame) -> pd.DataFrame:
    """Records per month per category, by creation date."""
    if data.empty:
        return pd.DataFrame(columns=['month'])
    months = parse_dates(data['created_at']).dt.strftime('%Y-%m')
    table = pd.crosstab(months.rename('month'), data['category'])
    table.columns.name = None
    return table.reset_index()


def build_report(report_type: str, data: pd.DataFrame) -> pd.DataFrame:
    if report_type == 'summary':
        return summary_report(data)
    if report_type == 'detailed':
        return data.sort_values(['category', 'faculty_name'], na_position='last').reset_index(drop=True)
    if report_type == 'faculty-wise':
        return faculty_wise_report(data)
    if report_type == 'activity-wise':
        return activity_wise_report(data)
    if report_type == 'comparative':
        return comparative_report(data)
    if report_type == 'analytics':
        return monthly_report(data)
    raise ValueError(f"Unknown report type '{report_type}', supported: {', '.join(REPORT_TYPES)}")


def render_report(report: pd.DataFrame, output_format: str, sheet_name: str = 'Report') -> Tuple[bytes, str, str]:
    """
    Serialize a report frame

    Returns:
        (content, mimetype, file extension)
    """
    if output_format not in OUTPUT_FORMATS or output_format == 'bibtex':
        raise ValueError(f"Unsupported format '{output_format}' for a table report")
    mimetype, extension = OUTPUT_FORMATS[output_format]
    if output_format == 'csv':
        content = report.to_csv(index=False).encode('utf-8')
    elif output_format == 'excel':
        buffer = BytesIO()
        report.to_excel(buffer, index=False, sheet_name=sheet_name[:31], engine='openpyxl')
        content = buffer.getvalue()
    else:
        content = report.to_json(orient='records', date_format='iso').encode('utf-8')
    return content, mimetype, extension


def department_overview(rows_by_key: Dict[str, List[Dict]], faculty_count: int,
                        today: Optional[date] = None) -> Dict:
    """Headline numbers of the department-head workspace."""
    today = today or date.today()
    publications = pd.DataFrame(rows_by_key.get('publications') or [])
    projects = pd.DataFrame(rows_by_key.get('projects') or [])

    publications_this_year = 0
    if not publications.empty and 'created_at' in publications.columns:
        publications_this_year = int((parse_dates(publications['created_at']).dt.year == today.year).sum())

    active_projects = 0
    total_funding = 0.0
    if not projects.empty:
        if 'duration_to' in projects.columns:
            ends = parse_dates(projects['duration_to'])
            active_projects = int((ends >= pd.Timestamp(today, tz='UTC')).sum())
        if 'funded_amount' in projects.columns:
            total_funding = float(pd.to_numeric(projects['funded_amount'], errors='coerce').fillna(0).sum())

    return {
        'total_faculty': faculty_count,
        'publications_this_year': publications_this_year,
        'active_projects': active_projects,
        'total_funding': total_funding,
        'records_by_category': {
            category_name(key): len(rows or []) for key, rows in rows_by_key.items()
        },
    }


def analytics(rows_by_key: Dict[str, List[Dict]], names: Dict[str, str]) -> Dict:
    """Chart series of the analytics view."""
    data = combine_records(rows_by_key, names)

    publications = data[data['category'] == category_name('publications')]
    by_month = []
    if not publications.empty:
        months = parse_dates(publications['created_at']).dt.strftime('%Y-%m')
        table = pd.crosstab(months.rename('month'), publications['kind']) \
            .reindex(columns=list(INDEX_TYPES), fill_value=0)
        table.columns.name = None
        by_month = frame_to_records(table.reset_index())

    funding_by_year = []
    projects = data[data['category'] == category_name('projects')]
    if not projects.empty:
        years = parse_dates(projects['date']).dt.year
        funding = projects['amount'].groupby(years.rename('year')).sum()
        funding_by_year = [
            {'year': str(int(year)), 'amount': float(amount)} for year, amount in funding.items()
        ]

    return {
        'records_by_category': {
            name: int(count) for name, count in data.groupby('category').size().items()
        } if not data.empty else {},
        'publications_by_month': by_month,
        'funding_by_year': funding_by_year,
        'faculty_activity': frame_to_records(faculty_wise_report(data)),
    }
