"""Database models for checkpoint schedules and the disclosure receipts they produce."""

from datetime import datetime, timezone

from extensions import db


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CheckpointConfig(db.Model):
    """A couple's recurring sneak-peek schedule (monthly, quarterly, ...)."""

    __tablename__ = "checkpoint_configs"

    FREQUENCIES = ("monthly", "quarterly", "semi_annual", "specific_date")

    id = db.Column(db.Integer, primary_key=True)
    couple_id = db.Column(
        db.Integer,
        db.ForeignKey("couples.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    frequency = db.Column(db.String(20), nullable=False)
    day_of_month = db.Column(db.Integer, nullable=True)
    months = db.Column(db.JSON, nullable=True)
    specific_date = db.Column(db.Date, nullable=True)
    label = db.Column(db.String(120), nullable=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (
        db.CheckConstraint(
            "frequency IN ('monthly', 'quarterly', 'semi_annual', 'specific_date')",
            name="ck_checkpoint_configs_frequency",
        ),
        db.CheckConstraint(
            "day_of_month IS NULL OR (day_of_month >= 1 AND day_of_month <= 28)",
            name="ck_checkpoint_configs_day_of_month",
        ),
    )

    def to_public_dict(self) -> dict:
        return {
            "id": self.id,
            "couple_id": self.couple_id,
            "frequency": self.frequency,
            "day_of_month": self.day_of_month,
            "months": list(self.months) if self.months else None,
            "specific_date": self.specific_date.isoformat() if self.specific_date else None,
            "label": self.label,
            "is_active": self.is_active,
        }


class CheckpointReveal(db.Model):
    """Permanent receipt: this entry was shown to this viewer on this date."""

    __tablename__ = "checkpoint_reveals"

    id = db.Column(db.Integer, primary_key=True)
    couple_id = db.Column(
        db.Integer,
        db.ForeignKey("couples.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    checkpoint_config_id = db.Column(
        db.Integer,
        db.ForeignKey("checkpoint_configs.id", ondelete="SET NULL"),
        nullable=True,
    )
    entry_id = db.Column(
        db.Integer,
        db.ForeignKey("entries.id", ondelete="CASCADE"),
        nullable=False,
    )
    revealed_to_user_id = db.Column(db.Integer, index=True, nullable=False)
    checkpoint_date = db.Column(db.Date, nullable=False)
    revealed_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)

    entry = db.relationship("Entry", lazy="joined")
    config = db.relationship("CheckpointConfig", lazy="joined")

    __table_args__ = (
        db.UniqueConstraint("entry_id", "revealed_to_user_id", name="uq_checkpoint_entry_viewer"),
        db.UniqueConstraint("revealed_to_user_id", "checkpoint_date", name="uq_checkpoint_viewer_date"),
        db.Index("ix_checkpoint_reveals_couple_date", "couple_id", "checkpoint_date"),
    )
