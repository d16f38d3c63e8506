"""Database model for the per-year reveal snapshot."""

from datetime import datetime, timezone

from extensions import db
from models import isoformat_or_none


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RevealSnapshot(db.Model):
    """Statistics captured when a couple's annual reveal was opened (unique per couple/year)."""

    __tablename__ = "reveal_history"

    id = db.Column(db.Integer, primary_key=True)
    couple_id = db.Column(
        db.Integer,
        db.ForeignKey("couples.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    reveal_year = db.Column(db.Integer, nullable=False)
    revealed_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)
    stats_snapshot = db.Column(db.JSON, nullable=False)

    __table_args__ = (
        db.UniqueConstraint("couple_id", "reveal_year", name="uq_reveal_history_couple_year"),
    )

    def to_public_dict(self) -> dict:
        return {
            "couple_id": self.couple_id,
            "year": self.reveal_year,
            "revealed_at": isoformat_or_none(self.revealed_at),
            "stats": self.stats_snapshot,
        }
