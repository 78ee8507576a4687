from datetime import date, datetime, timezone
from io import BytesIO
import json
import pandas as pd
import pytest

from report_utils.record_filters import (
    date_range_cutoff, records_frame, filter_by_search, filter_by_faculty, filter_by_dates,
)
from report_utils.report_builder import (
    combine_records, build_report, render_report, department_overview, analytics,
)

NAMES = {'u1': 'Asha Rao', 'u2': 'Vikram Shah'}

ROWS = {
    'publications': [
        {'id': 'p1', 'user_id': 'u1', 'paper_title': 'Graph Kernels for Molecules',
         'journal_conference_name': 'JMLR', 'index_type': 'SCI', 'created_at': '2024-01-10T08:00:00+00:00'},
        {'id': 'p2', 'user_id': 'u2', 'paper_title': 'Edge Federated Learning',
         'journal_conference_name': 'IEEE Access', 'index_type': 'Scopus', 'created_at': '2024-03-02T08:00:00+00:00'},
        {'id': 'p3', 'user_id': 'u1', 'paper_title': 'Sparse Attention',
         'journal_conference_name': 'NeurIPS', 'index_type': 'Scopus', 'created_at': '2024-03-20T08:00:00+00:00'},
    ],
    'projects': [
        {'id': 'r1', 'user_id': 'u1', 'title': 'Smart Grid', 'funding_agency': 'DST', 'funded_amount': 500000,
         'duration_from': '2023-04-01', 'duration_to': '2026-03-31', 'created_at': '2023-04-02T00:00:00+00:00'},
        {'id': 'r2', 'user_id': 'u2', 'title': 'Water Quality', 'funding_agency': 'AICTE', 'funded_amount': 200000,
         'duration_from': '2024-06-01', 'duration_to': '2025-05-31', 'created_at': '2024-06-02T00:00:00+00:00'},
    ],
    'awards': [],
}


def test_date_range_cutoff():
    today = date(2024, 3, 31)
    assert date_range_cutoff('last30days', today) == '2024-03-01'
    assert date_range_cutoff('last3months', today) == '2023-12-31'
    assert date_range_cutoff('lastyear', today) == '2023-03-31'
    assert date_range_cutoff('all', today) is None
    assert date_range_cutoff(None, today) is None
    with pytest.raises(ValueError):
        date_range_cutoff('lastdecade', today)


def test_search_is_case_insensitive_and_covers_faculty_name():
    data = records_frame(ROWS['publications'], NAMES)

    assert list(filter_by_search(data, 'GRAPH', ['paper_title'])['id']) == ['p1']
    assert list(filter_by_search(data, 'vikram', ['paper_title'])['id']) == ['p2']
    assert list(filter_by_search(data, 'ieee', ['journal_conference_name'])['id']) == ['p2']
    assert len(filter_by_search(data, '', ['paper_title'])) == 3


def test_faculty_and_date_filters():
    data = records_frame(ROWS['publications'], NAMES)

    assert list(filter_by_faculty(data, 'Asha Rao')['id']) == ['p1', 'p3']
    assert len(filter_by_faculty(data, 'All Faculty')) == 3
    assert list(filter_by_dates(data, 'created_at', '2024-03-01', '2024-03-02')['id']) == ['p2']


def test_combine_records_flattens_tables():
    data = combine_records(ROWS, NAMES)

    assert len(data) == 5
    assert set(data['category']) == {'Publications', 'Projects'}
    projects = data[data['category'] == 'Projects']
    assert projects['amount'].sum() == 700000


def test_summary_and_faculty_wise_reports():
    data = combine_records(ROWS, NAMES)

    summary = build_report('summary', data).set_index('category')
    assert summary.loc['Publications', 'records'] == 3
    assert summary.loc['Projects', 'total_funding'] == 700000
    assert summary.loc['Publications', 'faculty'] == 2

    faculty = build_report('faculty-wise', data).set_index('faculty_name')
    assert faculty.loc['Asha Rao', 'Total'] == 3
    assert faculty.loc['Vikram Shah', 'Publications'] == 1


def test_comparative_report_counts_by_year():
    report = build_report('comparative', combine_records(ROWS, NAMES)).set_index('category')

    assert report.loc['Publications', '2024'] == 3
    assert report.loc['Projects', '2023'] == 1


def test_unknown_report_type():
    with pytest.raises(ValueError):
        build_report('pie-chart', combine_records(ROWS, NAMES))


def test_render_formats():
    report = build_report('summary', combine_records(ROWS, NAMES))

    content, mimetype, extension = render_report(report, 'csv')
    assert mimetype == 'text/csv' and extension == 'csv'
    assert pd.read_csv(BytesIO(content))['records'].sum() == 5

    content, _, extension = render_report(report, 'excel')
    assert extension == 'xlsx'
    assert content[:2] == b'PK'

    content, _, _ = render_report(report, 'json')
    assert {row['category'] for row in json.loads(content)} == {'Publications', 'Projects'}

    with pytest.raises(ValueError):
        render_report(report, 'bibtex')


def test_department_overview():
    overview = department_overview(ROWS, faculty_count=2, today=date(2025, 1, 15))

    assert overview['total_faculty'] == 2
    assert overview['publications_this_year'] == 0
    assert overview['active_projects'] == 2
    assert overview['total_funding'] == 700000
    assert overview['records_by_category']['Publications'] == 3


def test_analytics_series():
    data = analytics(ROWS, NAMES)

    months = {row['month']: row for row in data['publications_by_month']}
    assert months['2024-03']['Scopus'] == 2
    assert months['2024-01']['SCI'] == 1
    assert months['2024-01']['Website Only'] == 0
    assert {row['year']: row['amount'] for row in data['funding_by_year']} == {'2023': 500000, '2024': 200000}
    assert data['records_by_category'] == {'Projects': 2, 'Publications': 3}


def seed(backend, faculty_user, other_faculty):
    recent = datetime.now(timezone.utc).isoformat()
    backend.add_row('publications', user_id=faculty_user.id, paper_title='Graph Kernels for Molecules',
                    journal_conference_name='JMLR', index_type='SCI', created_at='2020-01-10T08:00:00+00:00')
    backend.add_row('publications', user_id=other_faculty.id, paper_title='Edge Federated Learning',
                    journal_conference_name='IEEE Access', index_type='Scopus', created_at=recent)
    backend.add_row('awards', user_id=faculty_user.id, title='Best Teacher', issuing_body='University',
                    date_awarded='2024-09-05', created_at=recent)


def test_faculty_data_filters(client, backend, faculty_user, other_faculty, hod_headers):
    seed(backend, faculty_user, other_faculty)

    data = client.get('/api/hod/faculty-data', headers=hod_headers).get_json()
    assert data['counts']['Publications'] == 2
    assert data['counts']['Awards'] == 1
    assert data['data']['Awards'][0]['faculty_name'] == 'Asha Rao'

    data = client.get('/api/hod/faculty-data?search=graph', headers=hod_headers).get_json()
    assert data['counts']['Publications'] == 1

    data = client.get('/api/hod/faculty-data?faculty=Vikram%20Shah', headers=hod_headers).get_json()
    assert data['counts'] == {'Publications': 1, 'FDP Certifications': 0, 'Projects': 0,
                              'Awards': 0, 'Patents': 0, 'Workshops': 0}

    data = client.get('/api/hod/faculty-data?date_range=lastyear&category=Publications',
                      headers=hod_headers).get_json()
    assert list(data['data']) == ['Publications']
    assert [row['paper_title'] for row in data['data']['Publications']] == ['Edge Federated Learning']

    response = client.get('/api/hod/faculty-data?date_range=someday', headers=hod_headers)
    assert response.status_code == 400


def test_faculty_names_and_report_options(client, faculty_user, hod_headers):
    names = client.get('/api/hod/faculty', headers=hod_headers).get_json()['data']
    assert names == ['All Faculty', 'Asha Rao', 'Head of Department']

    options = client.get('/api/hod/reports', headers=hod_headers).get_json()
    assert 'bibtex' in options['formats']
    assert len(options['report_types']) == 6


def test_report_requires_type_and_format(client, hod_headers):
    response = client.post('/api/hod/reports', headers=hod_headers, json={'report_type': 'summary'})

    assert response.status_code == 400
    assert response.get_json()['title'] == 'Please select report type and format'


def test_report_download(client, backend, faculty_user, other_faculty, hod_headers):
    seed(backend, faculty_user, other_faculty)

    response = client.post('/api/hod/reports', headers=hod_headers,
                           json={'report_type': 'summary', 'format': 'csv'})
    assert response.status_code == 200
    assert response.mimetype == 'text/csv'
    assert 'attachment' in response.headers['Content-Disposition']
    report = pd.read_csv(BytesIO(response.data)).set_index('category')
    assert report.loc['Publications', 'records'] == 2

    response = client.post('/api/hod/reports', headers=hod_headers, json={
        'report_type': 'faculty-wise', 'format': 'json', 'faculty': ['Asha Rao'],
    })
    rows = json.loads(response.data)
    assert [row['faculty_name'] for row in rows] == ['Asha Rao']
    assert rows[0]['Total'] == 2


def test_bibtex_report(client, backend, faculty_user, other_faculty, hod_headers):
    seed(backend, faculty_user, other_faculty)

    response = client.post('/api/hod/reports', headers=hod_headers, json={
        'report_type': 'detailed', 'format': 'bibtex', 'faculty': ['Vikram Shah'],
    })
    text = response.data.decode('utf-8')
    assert '.bib' in response.headers['Content-Disposition']
    assert text.count('@article') == 1
    assert 'Edge Federated Learning' in text


def test_analytics_endpoint(client, backend, faculty_user, other_faculty, hod_headers):
    seed(backend, faculty_user, other_faculty)

    data = client.get('/api/hod/analytics', headers=hod_headers).get_json()['data']

    assert data['records_by_category']['Publications'] == 2
    assert {row['faculty_name'] for row in data['faculty_activity']} == {'Asha Rao', 'Vikram Shah'}
