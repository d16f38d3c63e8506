"""Database models for the couple diary tables the disclosure engine reads."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from extensions import db


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Couple(db.Model):
    """Two paired partners sharing one disclosure timeline."""

    __tablename__ = "couples"

    id = db.Column(db.Integer, primary_key=True)
    partner_1_id = db.Column(db.Integer, nullable=False, index=True)
    partner_2_id = db.Column(db.Integer, nullable=True, index=True)

    anniversary_date = db.Column(db.Date, nullable=True)
    is_revealed = db.Column(db.Boolean, default=False, nullable=False)
    last_reveal_year = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        nullable=False,
    )

    __table_args__ = (
        db.CheckConstraint("partner_1_id != partner_2_id", name="ck_couples_different_partners"),
        db.CheckConstraint(
            "last_reveal_year IS NULL OR is_revealed",
            name="ck_couples_reveal_year_requires_flag",
        ),
    )

    @property
    def partner_ids(self) -> tuple[int, Optional[int]]:
        return self.partner_1_id, self.partner_2_id

    def is_member(self, user_id: Optional[int]) -> bool:
        if user_id is None:
            return False
        return user_id in (self.partner_1_id, self.partner_2_id)

    def partner_of(self, user_id: Optional[int]) -> Optional[int]:
        """Return the other partner's id, or None when the user is not a member."""
        if user_id is None:
            return None
        if user_id == self.partner_1_id:
            return self.partner_2_id
        if user_id == self.partner_2_id:
            return self.partner_1_id
        return None

    def to_public_dict(self) -> dict:
        return {
            "id": self.id,
            "partner_1_id": self.partner_1_id,
            "partner_2_id": self.partner_2_id,
            "anniversary_date": self.anniversary_date.isoformat() if self.anniversary_date else None,
            "is_revealed": self.is_revealed,
            "last_reveal_year": self.last_reveal_year,
        }

    def __repr__(self) -> str:  # pragma: no cover - helper for shell debugging
        return f"<Couple id={self.id} partners={self.partner_ids!r} revealed={self.is_revealed!r}>"


class Entry(db.Model):
    """A diary entry. Only published (non-draft) entries are ever disclosed."""

    __tablename__ = "entries"

    id = db.Column(db.Integer, primary_key=True)
    couple_id = db.Column(
        db.Integer,
        db.ForeignKey("couples.id", ondelete="CASCADE"),
        nullable=False,
    )
    author_id = db.Column(db.Integer, nullable=False)

    title = db.Column(db.String(255), nullable=False, default="")
    content_html = db.Column(db.Text, nullable=False, default="")
    content_plain = db.Column(db.Text, nullable=False, default="")
    word_count = db.Column(db.Integer, nullable=False, default=0)
    mood = db.Column(db.String(50), nullable=True)

    is_draft = db.Column(db.Boolean, default=True, nullable=False)
    is_favorite = db.Column(db.Boolean, default=False, nullable=False)
    entry_date = db.Column(db.Date, nullable=False, index=True)

    location_name = db.Column(db.String(255), nullable=True)
    location_lat = db.Column(db.Float, nullable=True)
    location_lng = db.Column(db.Float, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        nullable=False,
    )

    media = db.relationship("Media", backref="entry", cascade="all, delete-orphan", lazy="select")

    __table_args__ = (
        db.Index("ix_entries_couple_author", "couple_id", "author_id"),
    )

    @property
    def is_published(self) -> bool:
        return not self.is_draft

    def __repr__(self) -> str:  # pragma: no cover - helper for shell debugging
        return f"<Entry id={self.id} author={self.author_id} date={self.entry_date}>"


class Media(db.Model):
    """Image, video or voice memo attached to an entry."""

    __tablename__ = "media"

    MEDIA_TYPES = ("image", "video", "audio")

    id = db.Column(db.Integer, primary_key=True)
    entry_id = db.Column(
        db.Integer,
        db.ForeignKey("entries.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    author_id = db.Column(db.Integer, nullable=False)
    media_type = db.Column(db.String(10), nullable=False)
    storage_path = db.Column(db.String(500), nullable=False, default="")
    mime_type = db.Column(db.String(100), nullable=False, default="")
    duration_ms = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (
        db.CheckConstraint(
            "media_type IN ('image', 'video', 'audio')",
            name="ck_media_type",
        ),
    )


def isoformat_or_none(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    aware = ensure_aware(value)
    return aware.astimezone(timezone.utc).isoformat()


def ensure_aware(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
