"""Read contract onto the entries and media tables owned by the authoring side.

The disclosure engine never writes entries. It only asks for a couple's
published entries (optionally narrowed to one calendar year or one author),
for media counts joined to those entries, and whether a viewer may read a
given partner entry.
"""

from __future__ import annotations

from datetime import date
from typing import Dict, List, Optional

import bleach
from sqlalchemy import func

from extensions import db
from models import Couple, Entry, Media, isoformat_or_none

ALLOWED_ENTRY_TAGS = [
    "p",
    "br",
    "strong",
    "b",
    "em",
    "i",
    "u",
    "s",
    "ul",
    "ol",
    "li",
    "h1",
    "h2",
    "h3",
    "blockquote",
    "a",
    "span",
]
ALLOWED_ENTRY_ATTRIBUTES = {"a": ["href", "title"]}


def year_bounds(year: int) -> tuple[date, date]:
    return date(year, 1, 1), date(year, 12, 31)


def published_entries_query(
    couple_id: int,
    year: Optional[int] = None,
    author_id: Optional[int] = None,
):
    query = Entry.query.filter(
        Entry.couple_id == couple_id,
        Entry.is_draft.is_(False),
    )
    if year is not None:
        start, end = year_bounds(year)
        query = query.filter(Entry.entry_date >= start, Entry.entry_date <= end)
    if author_id is not None:
        query = query.filter(Entry.author_id == author_id)
    return query


def published_entries(
    couple_id: int,
    year: Optional[int] = None,
    author_id: Optional[int] = None,
) -> List[Entry]:
    """Return published entries in a stable order (date, creation time, id)."""
    return (
        published_entries_query(couple_id, year=year, author_id=author_id)
        .order_by(Entry.entry_date.asc(), Entry.created_at.asc(), Entry.id.asc())
        .all()
    )


def media_counts(couple_id: int, year: Optional[int] = None) -> Dict[str, int]:
    """Count media attached to published entries, keyed by media type."""
    query = (
        db.session.query(Media.media_type, func.count(Media.id))
        .join(Entry, Media.entry_id == Entry.id)
        .filter(Entry.couple_id == couple_id, Entry.is_draft.is_(False))
    )
    if year is not None:
        start, end = year_bounds(year)
        query = query.filter(Entry.entry_date >= start, Entry.entry_date <= end)

    counts = {media_type: 0 for media_type in Media.MEDIA_TYPES}
    for media_type, count in query.group_by(Media.media_type).all():
        counts[media_type] = int(count)
    return counts


def can_view_entry(couple: Couple, entry: Entry, viewer_id: Optional[int]) -> bool:
    """Authors always see their own entries; partners only after a disclosure."""
    if entry.couple_id != couple.id or not couple.is_member(viewer_id):
        return False
    if entry.author_id == viewer_id:
        return True
    if not entry.is_published:
        return False
    if couple.is_revealed:
        return True

    from checkpoints.models import CheckpointReveal

    receipt = CheckpointReveal.query.filter_by(
        entry_id=entry.id,
        revealed_to_user_id=viewer_id,
    ).first()
    return receipt is not None


def sanitize_entry_html(raw_html: Optional[str]) -> str:
    if not raw_html:
        return ""
    return bleach.clean(
        raw_html,
        tags=ALLOWED_ENTRY_TAGS,
        attributes=ALLOWED_ENTRY_ATTRIBUTES,
        strip=True,
    )


def serialize_entry(entry: Entry) -> dict:
    return {
        "id": entry.id,
        "author_id": entry.author_id,
        "title": entry.title,
        "content_html": sanitize_entry_html(entry.content_html),
        "content_plain": entry.content_plain,
        "word_count": entry.word_count,
        "mood": entry.mood,
        "entry_date": entry.entry_date.isoformat(),
        "location_name": entry.location_name,
        "location_lat": entry.location_lat,
        "location_lng": entry.location_lng,
        "created_at": isoformat_or_none(entry.created_at),
    }


def serialize_entry_summary(entry: Entry) -> dict:
    return {
        "id": entry.id,
        "title": entry.title,
        "content_plain": entry.content_plain,
        "word_count": entry.word_count,
        "mood": entry.mood,
        "entry_date": entry.entry_date.isoformat(),
        "location_name": entry.location_name,
    }
