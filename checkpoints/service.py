"""Checkpoint selection, receipts and schedule management.

On a checkpoint day each partner is shown ONE published entry written by the
other partner that has never been shown to them before. Repeated calls on the
same day replay the same entry. The two uniqueness constraints on
``checkpoint_reveals`` ((entry, viewer) and (viewer, date)) are the backstop
that keeps concurrent or retried requests from disclosing twice.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional

from dateutil import parser as date_parser
from flask import current_app, has_app_context
from sqlalchemy.exc import IntegrityError

from clock import local_today
from entries_access import published_entries_query, serialize_entry, serialize_entry_summary
from errors import DisclosureError, InvalidState, NotAMember, NotFound
from extensions import db
from models import Couple, Entry, isoformat_or_none
from checkpoints.models import CheckpointConfig, CheckpointReveal
from checkpoints.recurrence import (
    build_rule,
    format_checkpoint_description,
    format_next_checkpoint_date,
    get_next_checkpoint_date,
    todays_checkpoints,
)

DEFAULT_MAX_DRAWS = 3
CONFIG_FIELDS = ("frequency", "day_of_month", "months", "specific_date", "label", "is_active")

_rng = random.SystemRandom()


@dataclass
class CheckpointResult:
    entry: Optional[Entry]
    already_revealed: bool = False
    no_entries_remaining: bool = False

    def to_dict(self) -> dict:
        return {
            "entry": serialize_entry(self.entry) if self.entry is not None else None,
            "already_revealed": self.already_revealed,
            "no_entries_remaining": self.no_entries_remaining,
        }


def load_couple(couple_id: int) -> Couple:
    couple = db.session.get(Couple, couple_id)
    if couple is None:
        raise NotFound("Couple not found.")
    return couple


def require_partner(couple: Couple, viewer_id: Optional[int]) -> int:
    partner_id = couple.partner_of(viewer_id)
    if partner_id is None:
        raise NotAMember("Invalid couple or not a member.")
    return partner_id


def get_checkpoint_entry(
    couple_id: int,
    viewer_id: int,
    config_id: Optional[int] = None,
    today: Optional[date] = None,
    rng: Optional[random.Random] = None,
) -> CheckpointResult:
    """Return today's checkpoint entry for the viewer, disclosing one if needed."""
    today = today or local_today()
    rng = rng or _rng
    couple = load_couple(couple_id)
    partner_id = require_partner(couple, viewer_id)
    if config_id is not None:
        _load_config(couple.id, config_id)

    for attempt in range(_max_draws()):
        existing = _todays_receipt(couple.id, viewer_id, today)
        if existing is not None:
            return CheckpointResult(entry=existing.entry, already_revealed=True)

        candidate_ids = undisclosed_entry_ids(couple.id, partner_id, viewer_id)
        if not candidate_ids:
            return CheckpointResult(entry=None, no_entries_remaining=True)

        receipt = CheckpointReveal(
            couple_id=couple.id,
            checkpoint_config_id=config_id,
            entry_id=rng.choice(candidate_ids),
            revealed_to_user_id=viewer_id,
            checkpoint_date=today,
        )
        db.session.add(receipt)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            _log_warning(
                "Checkpoint disclosure race for couple %s viewer %s on %s (draw %s)",
                couple.id,
                viewer_id,
                today.isoformat(),
                attempt + 1,
            )
            continue

        _log_info(
            "Checkpoint entry %s disclosed to viewer %s for couple %s",
            receipt.entry_id,
            viewer_id,
            couple.id,
        )
        return CheckpointResult(entry=db.session.get(Entry, receipt.entry_id))

    existing = _todays_receipt(couple.id, viewer_id, today)
    if existing is not None:
        return CheckpointResult(entry=existing.entry, already_revealed=True)
    raise DisclosureError(
        "Could not record today's checkpoint, please retry.",
        status_code=503,
        payload={"error": "checkpoint_conflict", "message": "Could not record today's checkpoint, please retry."},
    )


def undisclosed_entry_ids(couple_id: int, partner_id: int, viewer_id: int) -> List[int]:
    """Ids of the partner's published entries never shown to this viewer."""
    disclosed = db.select(CheckpointReveal.entry_id).where(
        CheckpointReveal.revealed_to_user_id == viewer_id
    )
    rows = (
        published_entries_query(couple_id, author_id=partner_id)
        .filter(~Entry.id.in_(disclosed))
        .with_entities(Entry.id)
        .order_by(Entry.id.asc())
        .all()
    )
    return [row[0] for row in rows]


def get_unrevealed_count(couple_id: int, viewer_id: int) -> int:
    couple = load_couple(couple_id)
    partner_id = couple.partner_of(viewer_id)
    if partner_id is None:
        return 0
    return len(undisclosed_entry_ids(couple.id, partner_id, viewer_id))


def get_checkpoint_history(couple_id: int, viewer_id: int) -> List[dict]:
    couple = load_couple(couple_id)
    require_partner(couple, viewer_id)
    receipts = (
        CheckpointReveal.query.filter_by(couple_id=couple.id, revealed_to_user_id=viewer_id)
        .order_by(CheckpointReveal.checkpoint_date.desc(), CheckpointReveal.id.desc())
        .all()
    )
    return [
        {
            "id": receipt.id,
            "checkpoint_date": receipt.checkpoint_date.isoformat(),
            "revealed_at": isoformat_or_none(receipt.revealed_at),
            "config_label": receipt.config.label if receipt.config else None,
            "entry": serialize_entry_summary(receipt.entry),
        }
        for receipt in receipts
    ]


def is_checkpoint_day(couple_id: int, today: Optional[date] = None) -> Dict[str, Any]:
    today = today or local_today()
    matched = todays_checkpoints(list_configs(couple_id), today)
    return {
        "matched": bool(matched),
        "configs": [_config_payload(config) for config in matched],
    }


def get_next_checkpoint(couple_id: int, today: Optional[date] = None) -> Dict[str, Any]:
    today = today or local_today()
    next_date = get_next_checkpoint_date(list_configs(couple_id), today)
    return {
        "next_date": next_date.isoformat() if next_date else None,
        "label": format_next_checkpoint_date(next_date, today),
    }


def list_configs(couple_id: int) -> List[CheckpointConfig]:
    return (
        CheckpointConfig.query.filter_by(couple_id=couple_id)
        .order_by(CheckpointConfig.created_at.asc(), CheckpointConfig.id.asc())
        .all()
    )


def create_config(couple_id: int, payload: Dict[str, Any]) -> CheckpointConfig:
    load_couple(couple_id)
    fields = _normalize_config_fields(payload)
    config = CheckpointConfig(couple_id=couple_id, **fields)
    db.session.add(config)
    db.session.commit()
    _log_info("Checkpoint config %s (%s) created for couple %s", config.id, config.frequency, couple_id)
    return config


def update_config(couple_id: int, config_id: int, updates: Dict[str, Any]) -> CheckpointConfig:
    config = _load_config(couple_id, config_id)
    merged = {field: getattr(config, field) for field in CONFIG_FIELDS}
    merged.update({key: value for key, value in updates.items() if key in CONFIG_FIELDS})
    for key, value in _normalize_config_fields(merged).items():
        setattr(config, key, value)
    db.session.commit()
    return config


def delete_config(couple_id: int, config_id: int) -> None:
    config = _load_config(couple_id, config_id)
    # Receipts outlive their schedule.
    CheckpointReveal.query.filter_by(checkpoint_config_id=config.id).update(
        {CheckpointReveal.checkpoint_config_id: None},
        synchronize_session=False,
    )
    db.session.delete(config)
    db.session.commit()
    _log_info("Checkpoint config %s deleted for couple %s", config_id, couple_id)


def _load_config(couple_id: int, config_id: int) -> CheckpointConfig:
    config = CheckpointConfig.query.filter_by(id=config_id, couple_id=couple_id).first()
    if config is None:
        raise NotFound("Checkpoint config not found.")
    return config


def _todays_receipt(couple_id: int, viewer_id: int, today: date) -> Optional[CheckpointReveal]:
    return CheckpointReveal.query.filter_by(
        couple_id=couple_id,
        revealed_to_user_id=viewer_id,
        checkpoint_date=today,
    ).first()


def _normalize_config_fields(payload: Dict[str, Any]) -> Dict[str, Any]:
    frequency = str(payload.get("frequency") or "").strip()
    specific_date = _coerce_date(payload.get("specific_date"))
    try:
        rule = build_rule(
            frequency,
            day_of_month=payload.get("day_of_month"),
            months=payload.get("months"),
            specific_date=specific_date,
        )
    except ValueError as exc:
        raise InvalidState(str(exc)) from exc

    is_specific = frequency == "specific_date"
    # Empty months keep the frequency's default schedule.
    keep_months = frequency in ("quarterly", "semi_annual") and bool(payload.get("months"))
    label = str(payload.get("label") or "").strip() or None
    return {
        "frequency": frequency,
        "day_of_month": None if is_specific else rule.day,
        "months": list(rule.months) if keep_months else None,
        "specific_date": specific_date if is_specific else None,
        "label": label,
        "is_active": _coerce_flag(payload.get("is_active"), default=True),
    }


def _coerce_flag(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"1", "true", "yes", "on"}:
            return True
        if lowered in {"0", "false", "no", "off"}:
            return False
    raise InvalidState(f"Could not read flag {value!r}; use true or false.")


def _coerce_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    try:
        return date_parser.isoparse(str(value)).date()
    except (TypeError, ValueError):
        raise InvalidState(f"Could not read date {value!r}.") from None


def _config_payload(config: CheckpointConfig) -> dict:
    payload = config.to_public_dict()
    payload["description"] = format_checkpoint_description(config)
    return payload


def _max_draws() -> int:
    if not has_app_context():
        return DEFAULT_MAX_DRAWS
    try:
        value = int(current_app.config.get("CHECKPOINT_MAX_DRAWS", DEFAULT_MAX_DRAWS))
    except (TypeError, ValueError):
        value = DEFAULT_MAX_DRAWS
    return max(1, value)


def _log_info(message: str, *args) -> None:
    if has_app_context():
        current_app.logger.info(message, *args)


def _log_warning(message: str, *args) -> None:
    if has_app_context():
        current_app.logger.warning(message, *args)
