"""Reveal statistics over a couple's published entries.

Everything here except ``build_reveal_stats`` is a pure function of the
entries handed in, so the same entry set always yields the same snapshot.
Ties resolve the same way every time:

- most active month: the earliest calendar month
- longest entry: earliest entry date, then earliest creation time, then lowest id
- top mood: alphabetically first mood
- favourite weekday: earliest weekday, Monday first
"""

from __future__ import annotations

import calendar
from collections import Counter
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Dict, Iterable, List, Optional, Sequence

from clock import disclosure_timezone
from entries_access import media_counts, published_entries
from models import Couple, ensure_aware

DEFAULT_AVG_HOUR = 12.0
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def longest_streak(dates: Iterable[date]) -> int:
    """Longest run of consecutive calendar days present in ``dates``."""
    ordered = sorted(set(dates))
    if not ordered:
        return 0
    best = current = 1
    for previous, following in zip(ordered, ordered[1:]):
        if following - previous == timedelta(days=1):
            current += 1
            best = max(best, current)
        else:
            current = 1
    return best


def average_hour(entries: Sequence, tz: Optional[tzinfo] = None) -> float:
    if not entries:
        return DEFAULT_AVG_HOUR
    hours = [_local_hour(entry.created_at, tz) for entry in entries]
    return round(sum(hours) / len(hours), 2)


def most_active_month(entries: Sequence) -> tuple[Optional[int], int]:
    counts = Counter(entry.entry_date.month for entry in entries)
    if not counts:
        return None, 0
    month = min(counts, key=lambda value: (-counts[value], value))
    return month, counts[month]


def longest_entry(entries: Sequence):
    if not entries:
        return None
    return min(
        entries,
        key=lambda entry: (
            -(entry.word_count or 0),
            entry.entry_date,
            ensure_aware(entry.created_at) or _EPOCH,
            entry.id or 0,
        ),
    )


def top_mood(entries: Sequence) -> Optional[str]:
    counts = Counter(entry.mood for entry in entries if entry.mood)
    if not counts:
        return None
    return min(counts, key=lambda mood: (-counts[mood], mood))


def favorite_weekday(entries: Sequence) -> Optional[str]:
    counts = Counter(entry.entry_date.weekday() for entry in entries)
    if not counts:
        return None
    weekday = min(counts, key=lambda value: (-counts[value], value))
    return calendar.day_name[weekday]


def tagged_locations(entries: Sequence) -> List[dict]:
    return [
        {
            "lat": entry.location_lat,
            "lng": entry.location_lng,
            "location_name": entry.location_name,
            "author_id": entry.author_id,
            "entry_date": entry.entry_date.isoformat(),
        }
        for entry in entries
        if entry.location_lat is not None and entry.location_lng is not None
    ]


def summarize_entries(
    partner_1_id: int,
    partner_2_id: Optional[int],
    entries: Sequence,
    media: Optional[Dict[str, int]] = None,
    year: Optional[int] = None,
    tz: Optional[tzinfo] = None,
) -> dict:
    """Build the fixed-shape statistics record for one couple."""
    media = media or {}
    partner_1_entries = [entry for entry in entries if entry.author_id == partner_1_id]
    partner_2_entries = [entry for entry in entries if entry.author_id == partner_2_id]

    month, month_count = most_active_month(entries)
    longest = longest_entry(entries)
    entry_dates = [entry.entry_date for entry in entries]
    locations = tagged_locations(entries)

    return {
        "year": year,
        "partner_1_id": partner_1_id,
        "partner_2_id": partner_2_id,
        "total_entries": len(entries),
        "partner_1_entries": len(partner_1_entries),
        "partner_2_entries": len(partner_2_entries),
        "partner_1_words": sum(entry.word_count or 0 for entry in partner_1_entries),
        "partner_2_words": sum(entry.word_count or 0 for entry in partner_2_entries),
        "partner_1_avg_hour": average_hour(partner_1_entries, tz),
        "partner_2_avg_hour": average_hour(partner_2_entries, tz),
        "most_active_month": calendar.month_name[month] if month else None,
        "most_active_month_number": month,
        "most_active_month_count": month_count,
        "longest_entry_words": (longest.word_count or 0) if longest else 0,
        "longest_entry_author_id": longest.author_id if longest else None,
        "longest_entry_date": longest.entry_date.isoformat() if longest else None,
        "partner_1_longest_streak": longest_streak(entry.entry_date for entry in partner_1_entries),
        "partner_2_longest_streak": longest_streak(entry.entry_date for entry in partner_2_entries),
        "total_media_images": int(media.get("image", 0)),
        "total_media_videos": int(media.get("video", 0)),
        "total_media_audio": int(media.get("audio", 0)),
        "partner_1_top_mood": top_mood(partner_1_entries),
        "partner_2_top_mood": top_mood(partner_2_entries),
        "partner_1_favorite_dow": favorite_weekday(partner_1_entries),
        "partner_2_favorite_dow": favorite_weekday(partner_2_entries),
        "first_entry_date": min(entry_dates).isoformat() if entry_dates else None,
        "last_entry_date": max(entry_dates).isoformat() if entry_dates else None,
        "locations": locations,
        "unique_location_count": len({(spot["lat"], spot["lng"]) for spot in locations}),
    }


def build_reveal_stats(couple: Couple, year: Optional[int] = None) -> dict:
    """Load the couple's published entries (one year, or all time) and summarize them."""
    entries = published_entries(couple.id, year=year)
    return summarize_entries(
        couple.partner_1_id,
        couple.partner_2_id,
        entries,
        media=media_counts(couple.id, year=year),
        year=year,
        tz=disclosure_timezone(),
    )


def _local_hour(created_at: Optional[datetime], tz: Optional[tzinfo]) -> int:
    if created_at is None:
        return int(DEFAULT_AVG_HOUR)
    aware = ensure_aware(created_at)
    return aware.astimezone(tz or timezone.utc).hour
