import re
from typing import Dict, List, Optional

import bibtexparser
from bibtexparser.bibdatabase import BibDatabase
from bibtexparser.bparser import BibTexParser
from bibtexparser.customization import convert_to_unicode

CITATION_STYLES = ('apa', 'mla')

_SMALL_WORDS = ['a', 'an', 'the', 'and', 'but', 'or', 'for', 'nor', 'on', 'at', 'to', 'by', 'in', 'of']


def _year(publication: Dict) -> str:
    created_at = publication.get('created_at') or ''
    match = re.match(r'(\d{4})', str(created_at))
    return match.group(1) if match else 'n.d.'


def _entry_id(author: str, year: str, title: str, taken: set) -> str:
    surname = (author.split()[-1] if author else 'anon').lower()
    first_word = next((w for w in re.findall(r'[A-Za-z]+', title or '') if w.lower() not in _SMALL_WORDS), 'paper')
    base = re.sub(r'[^a-z0-9]', '', f"{surname}{year}{first_word.lower()}") or 'entry'
    entry_id, suffix = base, ord('a')
    while entry_id in taken:
        entry_id = f"{base}{chr(suffix)}"
        suffix += 1
    taken.add(entry_id)
    return entry_id


def publication_to_entry(publication: Dict, author: Optional[str], taken: Optional[set] = None) -> Dict[str, str]:
    """
    Build a BibTeX article entry from a publications row

    Args:
        publication: publications row
        author: display name of the owning faculty member
        taken: entry ids already used in the same database

    Returns:
        dict: bibtexparser entry
    """
    taken = taken if taken is not None else set()
    year = _year(publication)
    title = publication.get('paper_title') or ''
    entry = {
        'ENTRYTYPE': 'article',
        'ID': _entry_id(author or '', year, title, taken),
        'title': title,
        'journal': publication.get('journal_conference_name') or '',
        'year': year,
    }
    if author:
        entry['author'] = author
    if publication.get('doi'):
        entry['doi'] = publication['doi']
    if publication.get('paper_number'):
        entry['number'] = str(publication['paper_number'])
    if publication.get('publication_url'):
        entry['url'] = publication['publication_url']
    if publication.get('index_type'):
        entry['note'] = f"Indexed: {publication['index_type']}"
    return entry


def publications_to_bibtex(publications: List[Dict], names: Dict[str, str]) -> str:
    """Serialize publications rows to a BibTeX document."""
    taken = set()
    database = BibDatabase()
    database.entries = [
        publication_to_entry(publication, names.get(publication.get('user_id')), taken)
        for publication in publications
    ]
    return bibtexparser.dumps(database)


def _cite_name(name: str, style: str) -> str:
    *given, surname = name.split() or ['']
    if not given:
        return name.strip()
    if style == 'mla':
        return f"{surname}, {' '.join(given)}"
    return f"{surname}, {' '.join(part[0] + '.' for part in given)}"


def format_author(authors, style):
    """Author list in the citation style, "Surname, I." for APA"""
    names = [_cite_name(name, style) for name in (authors or '').replace('\n', ' ').split(' and ') if name.strip()]
    if len(names) < 3:
        return ' and '.join(names)
    return ', '.join(names[:-1]) + f", and {names[-1]}"


def format_title(title, style):
    title = title.strip('{}')
    if not title or style != 'mla':
        # APA keeps the title as typed apart from the first letter
        return title[:1].upper() + title[1:]
    words = title.split()
    return ' '.join(
        word.lower() if position and word.lower() in _SMALL_WORDS else word.capitalize()
        for position, word in enumerate(words)
    )


def format_reference(entry, style='apa'):
    author = format_author(entry.get('author', ''), style)
    title = format_title(entry.get('title', ''), style)
    journal = entry.get('journal', '')
    number = entry.get('number')
    year = entry.get('year', 'n.d.')

    if style == 'mla':
        parts = [f"{author}. " if author else '', f"\"{title}.\" {journal}"]
        parts += [f", no. {number}" if number else '', f", {year}"]
    elif author:
        parts = [f"{author} ({year}). {title}. {journal}", f", {number}" if number else '']
    else:
        parts = [f"{title} ({year}). {journal}", f", {number}" if number else '']
    if entry.get('doi'):
        parts.append(f". https://doi.org/{entry['doi']}")
    return ''.join(parts)


def bibtex_to_text(bibtex_str, style='apa'):
    """Formatted reference list, one line per BibTeX entry"""
    parser = BibTexParser()
    parser.customization = convert_to_unicode
    bib_db = bibtexparser.loads(bibtex_str, parser=parser)

    output = []
    for entry in bib_db.entries:
        reference = format_reference(entry, style).strip().rstrip(',:')
        output.append(reference if reference.endswith('.') else reference + '.')
    return output
