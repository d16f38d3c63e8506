from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from app import create_app
from extensions import db
from models import Couple, Entry, Media

from helpers import PARTNER_ONE, PARTNER_TWO


@pytest.fixture
def app():
    app = create_app(
        {
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": "sqlite://",
            "DISCLOSURE_TIMEZONE": "UTC",
            "MAINTENANCE_MODE": False,
        }
    )
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def couple(app):
    couple = Couple(
        partner_1_id=PARTNER_ONE,
        partner_2_id=PARTNER_TWO,
        anniversary_date=date(2020, 6, 15),
    )
    db.session.add(couple)
    db.session.commit()
    return couple


@pytest.fixture
def make_entry(app):
    def _make_entry(
        couple: Couple,
        author_id: int,
        entry_date: date,
        *,
        word_count: int = 100,
        mood: str | None = None,
        is_draft: bool = False,
        created_at: datetime | None = None,
        location: tuple[float, float, str] | None = None,
        media_types: tuple[str, ...] = (),
        content_html: str = "<p>Dear diary</p>",
    ) -> Entry:
        entry = Entry(
            couple_id=couple.id,
            author_id=author_id,
            title=f"Entry on {entry_date.isoformat()}",
            content_html=content_html,
            content_plain="Dear diary",
            word_count=word_count,
            mood=mood,
            is_draft=is_draft,
            entry_date=entry_date,
            created_at=created_at or datetime(entry_date.year, entry_date.month, entry_date.day, 21, tzinfo=timezone.utc),
        )
        if location:
            entry.location_lat, entry.location_lng, entry.location_name = location
        for media_type in media_types:
            entry.media.append(
                Media(
                    author_id=author_id,
                    media_type=media_type,
                    storage_path=f"{author_id}/{media_type}",
                    mime_type=f"{media_type}/test",
                )
            )
        db.session.add(entry)
        db.session.commit()
        return entry

    return _make_entry
