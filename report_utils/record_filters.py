from typing import Dict, List, Optional, Iterable
from datetime import date
import pandas as pd

DATE_RANGES = {
    'last30days': pd.DateOffset(days=30),
    'last3months': pd.DateOffset(months=3),
    'last6months': pd.DateOffset(months=6),
    'lastyear': pd.DateOffset(years=1),
    'all': None,
}

ALL_FACULTY = 'All Faculty'
ALL_CATEGORIES = 'All Categories'


def date_range_cutoff(date_range: Optional[str], today: Optional[date] = None) -> Optional[str]:
    """
    Earliest creation date kept by a named date range

    Args:
        date_range: one of DATE_RANGES, empty means all time
        today: reference day, defaults to today

    Returns:
        ISO date string, or None when nothing is cut off
    """
    if not date_range:
        return None
    if date_range not in DATE_RANGES:
        raise ValueError(f"Unknown date range '{date_range}', supported: {', '.join(DATE_RANGES)}")
    offset = DATE_RANGES[date_range]
    if offset is None:
        return None
    reference = pd.Timestamp(today or date.today())
    return (reference - offset).date().isoformat()


def records_frame(rows: List[Dict], names: Dict[str, str]) -> pd.DataFrame:
    """Rows of one table with the owner's display name joined on user_id."""
    data = pd.DataFrame(rows)
    if data.empty:
        return pd.DataFrame(columns=['user_id', 'faculty_name'])
    if 'user_id' not in data.columns:
        data['user_id'] = None
    data['faculty_name'] = data['user_id'].map(names)
    return data


def filter_by_search(data: pd.DataFrame, term: Optional[str], fields: Iterable[str]) -> pd.DataFrame:
    """
    Keep rows where any search field or the faculty name contains the term,
    case-insensitive
    """
    if not term or data.empty:
        return data
    term_lower = term.lower()
    mask = pd.Series(False, index=data.index)
    for column in list(fields) + ['faculty_name']:
        if column not in data.columns:
            continue
        mask |= data[column].astype('string').str.lower().str.contains(term_lower, regex=False, na=False)
    return data[mask]


def filter_by_faculty(data: pd.DataFrame, faculty_name: Optional[str]) -> pd.DataFrame:
    if not faculty_name or faculty_name == ALL_FACULTY or data.empty:
        return data
    return data[data['faculty_name'] == faculty_name]


def parse_dates(values: pd.Series) -> pd.Series:
    """Dates and timestamps as UTC timestamps, unparsable values become NaT."""
    return pd.to_datetime(values, errors='coerce', utc=True, format='ISO8601')


def filter_by_dates(data: pd.DataFrame, column: str, date_from: Optional[str] = None,
                    date_to: Optional[str] = None) -> pd.DataFrame:
    if data.empty or (not date_from and not date_to) or column not in data.columns:
        return data
    stamps = parse_dates(data[column])
    mask = stamps.notna()
    if date_from:
        mask &= stamps >= pd.Timestamp(date_from, tz='UTC')
    if date_to:
        mask &= stamps < pd.Timestamp(date_to, tz='UTC') + pd.Timedelta(days=1)
    return data[mask]


def frame_to_records(data: pd.DataFrame) -> List[Dict]:
    """JSON-safe list of dicts, NaN becomes None."""
    if data.empty:
        return []
    return data.astype(object).where(data.notna(), None).to_dict(orient='records')
