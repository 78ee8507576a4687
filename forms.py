"""
Record form models.

One pydantic model per record type checks a submitted form: required
fields, enumerations, dates, times, amounts and the student list. Blank
values are treated as not filled in.
"""
from typing import Annotated, Any, ClassVar, Dict, List, Literal, Optional, Tuple
from datetime import date, time

from pydantic import BaseModel, ConfigDict, Field, BeforeValidator, PlainSerializer, model_validator
from pydantic_core import PydanticCustomError

from schemas import INDEX_TYPES, PATENT_STATUSES, STUDENT_PROJECT_TYPES, DAYS_OF_WEEK


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple)):
        return not any(str(v).strip() for v in value)
    return False


def _pad_hour(value: Any) -> Any:
    # Time inputs send "9:00" for single-digit hours
    if isinstance(value, str) and len(value.strip().split(':')[0]) == 1:
        return '0' + value.strip()
    return value


def _strip_thousands(value: Any) -> Any:
    if isinstance(value, str):
        return value.replace(',', '').strip()
    return value


def _split_names(value: Any) -> Any:
    if isinstance(value, str):
        value = value.split(',')
    if isinstance(value, (list, tuple)):
        return [str(item).strip() for item in value if item and str(item).strip()]
    return value


ClockTime = Annotated[time, BeforeValidator(_pad_hour), PlainSerializer(lambda t: t.strftime('%H:%M'), return_type=str)]
Amount = Annotated[float, BeforeValidator(_strip_thousands), Field(ge=0, allow_inf_nan=False)]
Names = Annotated[List[str], BeforeValidator(_split_names), Field(min_length=1)]


class RecordForm(BaseModel):
    """Base of the record forms, ``ranges`` lists (start, end) field pairs"""
    model_config = ConfigDict(str_strip_whitespace=True, coerce_numbers_to_str=True, extra='ignore')

    ranges: ClassVar[Tuple[Tuple[str, str], ...]] = ()

    @model_validator(mode='before')
    @classmethod
    def drop_blank_values(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {name: value for name, value in data.items() if not is_blank(value)}
        return data

    @model_validator(mode='after')
    def check_ranges(self):
        for start, end in self.ranges:
            first, last = getattr(self, start), getattr(self, end)
            if first is not None and last is not None and first > last:
                raise PydanticCustomError(
                    'range',
                    '{start} must not be after {end}',
                    {'start': start, 'end': end},
                )
        return self


class FdpForm(RecordForm):
    ranges = (('duration_from', 'duration_to'),)

    title: str
    organizer: str
    duration_from: date
    duration_to: date


class PublicationForm(RecordForm):
    journal_conference_name: str
    paper_title: str
    index_type: Literal[INDEX_TYPES]
    doi: Optional[str] = None
    paper_number: Optional[str] = None


class ProjectForm(RecordForm):
    ranges = (('duration_from', 'duration_to'),)

    title: str
    funding_agency: str
    funded_amount: Amount
    duration_from: date
    duration_to: date


class PatentForm(RecordForm):
    title: str
    status: Literal[PATENT_STATUSES]


class WorkshopForm(RecordForm):
    ranges = (('duration_from', 'duration_to'),)

    event_name: str
    organizer: str
    duration_from: date
    duration_to: date


class AwardForm(RecordForm):
    title: str
    issuing_body: str
    date_awarded: date


class MembershipForm(RecordForm):
    professional_body_name: str
    membership_id: str
    expiry_date: Optional[date] = None


class TimetableForm(RecordForm):
    ranges = (('start_time', 'end_time'),)

    course_name: str
    course_code: str
    semester: str
    day_of_week: Literal[DAYS_OF_WEEK]
    start_time: ClockTime
    end_time: ClockTime
    room_number: Optional[str] = None


class StudentProjectForm(RecordForm):
    project_title: str
    project_type: Literal[STUDENT_PROJECT_TYPES]
    students_involved: Names
    description: Optional[str] = None


class TeachingMaterialForm(RecordForm):
    title: str
    course_name: str
    course_code: str
    material_type: str
    description: Optional[str] = None


RECORD_FORMS: Dict[str, type] = {
    'fdp': FdpForm,
    'publications': PublicationForm,
    'projects': ProjectForm,
    'patents': PatentForm,
    'workshops': WorkshopForm,
    'awards': AwardForm,
    'memberships': MembershipForm,
    'timetable': TimetableForm,
    'student_projects': StudentProjectForm,
    'teaching_materials': TeachingMaterialForm,
}
