"""Annual reveal gate: Locked -> ReadyToOpen -> Revealed(year), once per calendar year."""

from __future__ import annotations

import enum
from datetime import date, datetime, timezone
from typing import List, Optional, Tuple

from flask import current_app, has_app_context
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from clock import local_today
from errors import InvalidState, NotFound, NotYetEligible
from extensions import db
from models import Couple
from checkpoints.recurrence import map_onto_year
from reveal.models import RevealSnapshot
from reveal.stats import build_reveal_stats

TRIGGER_ATTEMPTS = 2


class RevealState(enum.Enum):
    LOCKED = "locked"
    READY_TO_OPEN = "ready_to_open"
    REVEALED = "revealed"


def resolve_reveal_state(
    anniversary_date: Optional[date],
    last_reveal_year: Optional[int],
    today: date,
) -> RevealState:
    """Transition function for a couple's gate on ``today``."""
    if last_reveal_year is not None and last_reveal_year == today.year:
        return RevealState.REVEALED
    if anniversary_date is None:
        return RevealState.LOCKED
    if today < map_onto_year(anniversary_date, today.year):
        return RevealState.LOCKED
    if last_reveal_year is None or last_reveal_year < today.year:
        return RevealState.READY_TO_OPEN
    return RevealState.LOCKED


def is_anniversary_ready(
    anniversary_date: Optional[date],
    last_reveal_year: Optional[int],
    today: date,
) -> bool:
    return resolve_reveal_state(anniversary_date, last_reveal_year, today) is RevealState.READY_TO_OPEN


def days_until_anniversary(anniversary_date: date, today: date) -> int:
    """Days until the next anniversary; 0 on the day itself."""
    upcoming = map_onto_year(anniversary_date, today.year)
    if upcoming < today:
        upcoming = map_onto_year(anniversary_date, today.year + 1)
    return (upcoming - today).days


def is_ready_to_reveal(couple_id: int, today: Optional[date] = None) -> bool:
    couple = _load_couple(couple_id)
    return is_anniversary_ready(couple.anniversary_date, couple.last_reveal_year, today or local_today())


def reveal_status(couple: Couple, today: Optional[date] = None) -> dict:
    today = today or local_today()
    state = resolve_reveal_state(couple.anniversary_date, couple.last_reveal_year, today)
    payload = couple.to_public_dict()
    payload.update(
        {
            "state": state.value,
            "ready": state is RevealState.READY_TO_OPEN,
            "days_until_anniversary": (
                days_until_anniversary(couple.anniversary_date, today) if couple.anniversary_date else None
            ),
        }
    )
    return payload


def trigger_reveal(couple_id: int, today: Optional[date] = None) -> RevealSnapshot:
    """Open the annual reveal and store this year's statistics snapshot.

    Succeeds from ReadyToOpen, and again from Revealed for the same year (the
    snapshot is recomputed and overwritten). The couple flag update and the
    snapshot write commit together or not at all.
    """
    today = today or local_today()
    attempt = 0
    while True:
        attempt += 1
        try:
            snapshot = _trigger_once(couple_id, today)
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            if attempt >= TRIGGER_ATTEMPTS:
                raise
            # A concurrent trigger inserted this year's snapshot first; recompute over it.
            _log_warning("Concurrent reveal trigger for couple %s (attempt %s)", couple_id, attempt)
            continue
        except Exception:
            db.session.rollback()
            raise
        _log_info("Couple %s revealed for %s", couple_id, today.year)
        return snapshot


def get_snapshot(couple_id: int, year: int) -> RevealSnapshot:
    snapshot = RevealSnapshot.query.filter_by(couple_id=couple_id, reveal_year=year).first()
    if snapshot is None:
        raise NotFound(f"No reveal snapshot for {year}.")
    return snapshot


def list_revealed_years(couple_id: int) -> List[Tuple[int, datetime]]:
    rows = (
        RevealSnapshot.query.filter_by(couple_id=couple_id)
        .order_by(RevealSnapshot.reveal_year.desc())
        .with_entities(RevealSnapshot.reveal_year, RevealSnapshot.revealed_at)
        .all()
    )
    return [(row[0], row[1]) for row in rows]


def _trigger_once(couple_id: int, today: date) -> RevealSnapshot:
    year = today.year
    couple = db.session.query(Couple).filter(Couple.id == couple_id).with_for_update().first()
    if couple is None:
        raise NotFound("Couple not found.")
    if couple.anniversary_date is None:
        _log_warning("Reveal rejected for couple %s: no anniversary date", couple_id)
        raise InvalidState("No anniversary date set.")

    state = resolve_reveal_state(couple.anniversary_date, couple.last_reveal_year, today)
    if state is RevealState.LOCKED:
        _log_warning("Reveal rejected for couple %s: gate locked on %s", couple_id, today.isoformat())
        raise NotYetEligible("Anniversary has not been reached yet.")

    stats = build_reveal_stats(couple, year)

    updated = (
        db.session.query(Couple)
        .filter(
            Couple.id == couple.id,
            or_(Couple.last_reveal_year.is_(None), Couple.last_reveal_year <= year),
        )
        .update(
            {Couple.is_revealed: True, Couple.last_reveal_year: year},
            synchronize_session="fetch",
        )
    )
    if updated != 1:
        raise NotYetEligible("This couple has already revealed a later year.")

    snapshot = RevealSnapshot.query.filter_by(couple_id=couple.id, reveal_year=year).first()
    if snapshot is None:
        snapshot = RevealSnapshot(couple_id=couple.id, reveal_year=year, stats_snapshot=stats)
        db.session.add(snapshot)
    else:
        snapshot.stats_snapshot = stats
        snapshot.revealed_at = datetime.now(timezone.utc)
    db.session.flush()
    return snapshot


def _load_couple(couple_id: int) -> Couple:
    couple = db.session.get(Couple, couple_id)
    if couple is None:
        raise NotFound("Couple not found.")
    return couple


def _log_info(message: str, *args) -> None:
    if has_app_context():
        current_app.logger.info(message, *args)


def _log_warning(message: str, *args) -> None:
    if has_app_context():
        current_app.logger.warning(message, *args)
