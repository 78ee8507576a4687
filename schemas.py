"""
Database Schema Models for the University Academic Portal.

This module mirrors the tables of the managed Supabase project. The classes
are used for type checking, serialization and documentation only: the
tables, their row-level rules and their enumerations live in the backend.
"""

from typing import Optional, List, Dict, Tuple
from dataclasses import dataclass, field, asdict
from datetime import datetime


INDEX_TYPES = ('SCI', 'Scopus', 'Website Only')
PATENT_STATUSES = ('Filed', 'Granted')
STUDENT_PROJECT_TYPES = ('External', 'In-house', 'Mini', 'Minor', 'Major')
REQUEST_STATUSES = ('pending', 'approved', 'rejected')
REQUEST_SECTIONS = (
    'Projects',
    'Publications',
    'Patents',
    'FDP Certifications',
    'Workshops',
    'Awards',
)
DAYS_OF_WEEK = ('Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday')


@dataclass
class Profile:
    """One profile row per authenticated identity."""
    id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    department: Optional[str] = None
    designation: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Dict) -> 'Profile':
        return cls(
            id=row['id'],
            email=row.get('email'),
            full_name=row.get('full_name'),
            department=row.get('department'),
            designation=row.get('designation'),
            created_at=row.get('created_at'),
            updated_at=row.get('updated_at'),
        )

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass
class Publication:
    """Journal or conference paper."""
    user_id: str
    journal_conference_name: str
    paper_title: str
    index_type: str
    doi: Optional[str] = None
    paper_number: Optional[str] = None
    publication_url: Optional[str] = None
    id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class FdpCertification:
    """Faculty Development Program certificate."""
    user_id: str
    title: str
    organizer: str
    duration_from: str
    duration_to: str
    certificate_url: Optional[str] = None
    id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class Project:
    """Funded research or consultancy project."""
    user_id: str
    title: str
    funding_agency: str
    funded_amount: float
    duration_from: str
    duration_to: str
    sanction_letter_url: Optional[str] = None
    id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class Patent:
    user_id: str
    title: str
    status: str
    document_url: Optional[str] = None
    id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class Award:
    user_id: str
    title: str
    issuing_body: str
    date_awarded: str
    certificate_url: Optional[str] = None
    id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class Membership:
    """Membership of a professional body."""
    user_id: str
    professional_body_name: str
    membership_id: str
    expiry_date: Optional[str] = None
    certificate_url: Optional[str] = None
    id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class Workshop:
    """Workshop, seminar or conference attended or organized."""
    user_id: str
    event_name: str
    organizer: str
    duration_from: str
    duration_to: str
    certificate_url: Optional[str] = None
    id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class StudentProject:
    user_id: str
    project_title: str
    project_type: str
    students_involved: List[str] = field(default_factory=list)
    description: Optional[str] = None
    id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class TeachingMaterial:
    user_id: str
    title: str
    course_name: str
    course_code: str
    material_type: str
    description: Optional[str] = None
    file_url: Optional[str] = None
    id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class TimetableEntry:
    user_id: str
    course_name: str
    course_code: str
    semester: str
    day_of_week: str
    start_time: str
    end_time: str
    room_number: Optional[str] = None
    id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class FacultyRequest:
    """Peer-to-peer request for visibility into one data section."""
    from_faculty_id: str
    to_faculty_id: str
    requested_section: str
    status: str = 'pending'
    notes: Optional[str] = None
    id: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class RecordType:
    """Form definition for one table of faculty records.

    Every record form follows the same pattern: validate the required
    fields, optionally upload one document, insert one row owned by the
    current identity, then re-query that identity's rows.
    """
    key: str
    table: str
    label: str
    model: type
    required: Tuple[str, ...]
    optional: Tuple[str, ...] = ()
    choices: Dict[str, Tuple[str, ...]] = field(default_factory=dict)
    list_fields: Tuple[str, ...] = ()
    document_column: Optional[str] = None
    storage_category: Optional[str] = None
    order_by: str = 'created_at'
    search_fields: Tuple[str, ...] = ()
    date_column: str = 'created_at'

    @property
    def fields(self) -> Tuple[str, ...]:
        return self.required + self.optional

    def describe(self) -> Dict:
        return {
            'key': self.key,
            'table': self.table,
            'label': self.label,
            'required': list(self.required),
            'optional': list(self.optional),
            'choices': {name: list(values) for name, values in self.choices.items()},
            'accepts_file': self.document_column is not None,
        }


RECORD_TYPES: Dict[str, RecordType] = {
    'fdp': RecordType(
        key='fdp',
        table='fdp_certifications',
        label='FDP certification',
        model=FdpCertification,
        required=('title', 'organizer', 'duration_from', 'duration_to'),
        document_column='certificate_url',
        storage_category='fdp',
        search_fields=('title', 'organizer'),
        date_column='duration_from',
    ),
    'publications': RecordType(
        key='publications',
        table='publications',
        label='publication',
        model=Publication,
        required=('journal_conference_name', 'paper_title', 'index_type'),
        optional=('doi', 'paper_number'),
        choices={'index_type': INDEX_TYPES},
        document_column='publication_url',
        storage_category='publications',
        search_fields=('paper_title', 'journal_conference_name'),
    ),
    'projects': RecordType(
        key='projects',
        table='projects',
        label='project',
        model=Project,
        required=('title', 'funding_agency', 'funded_amount', 'duration_from', 'duration_to'),
        document_column='sanction_letter_url',
        storage_category='projects',
        search_fields=('title', 'funding_agency'),
        date_column='duration_from',
    ),
    'patents': RecordType(
        key='patents',
        table='patents',
        label='patent',
        model=Patent,
        required=('title', 'status'),
        choices={'status': PATENT_STATUSES},
        document_column='document_url',
        storage_category='patents',
        search_fields=('title', 'status'),
    ),
    'workshops': RecordType(
        key='workshops',
        table='workshops',
        label='workshop',
        model=Workshop,
        required=('event_name', 'organizer', 'duration_from', 'duration_to'),
        document_column='certificate_url',
        storage_category='workshops',
        search_fields=('event_name', 'organizer'),
        date_column='duration_from',
    ),
    'awards': RecordType(
        key='awards',
        table='awards',
        label='award',
        model=Award,
        required=('title', 'issuing_body', 'date_awarded'),
        document_column='certificate_url',
        storage_category='awards',
        order_by='date_awarded',
        search_fields=('title', 'issuing_body'),
        date_column='date_awarded',
    ),
    'memberships': RecordType(
        key='memberships',
        table='memberships',
        label='membership',
        model=Membership,
        required=('professional_body_name', 'membership_id'),
        optional=('expiry_date',),
        document_column='certificate_url',
        storage_category='memberships',
        search_fields=('professional_body_name', 'membership_id'),
    ),
    'timetable': RecordType(
        key='timetable',
        table='timetable',
        label='class',
        model=TimetableEntry,
        required=('course_name', 'course_code', 'semester', 'day_of_week', 'start_time', 'end_time'),
        optional=('room_number',),
        choices={'day_of_week': DAYS_OF_WEEK},
        search_fields=('course_name', 'course_code'),
    ),
    'student_projects': RecordType(
        key='student_projects',
        table='student_projects',
        label='student project',
        model=StudentProject,
        required=('project_title', 'project_type', 'students_involved'),
        optional=('description',),
        choices={'project_type': STUDENT_PROJECT_TYPES},
        list_fields=('students_involved',),
        search_fields=('project_title', 'project_type'),
    ),
    'teaching_materials': RecordType(
        key='teaching_materials',
        table='teaching_materials',
        label='teaching material',
        model=TeachingMaterial,
        required=('title', 'course_name', 'course_code', 'material_type'),
        optional=('description',),
        document_column='file_url',
        storage_category='teaching-materials',
        search_fields=('title', 'course_name', 'course_code'),
    ),
}

# Categories shown in the department-head views, keyed by display name.
HOD_CATEGORIES = {
    'Publications': 'publications',
    'FDP Certifications': 'fdp',
    'Projects': 'projects',
    'Awards': 'awards',
    'Patents': 'patents',
    'Workshops': 'workshops',
    'Teaching Materials': 'teaching_materials',
    'Student Projects': 'student_projects',
}

FACULTY_DATA_CATEGORIES = (
    'Publications',
    'FDP Certifications',
    'Projects',
    'Awards',
    'Patents',
    'Workshops',
)
