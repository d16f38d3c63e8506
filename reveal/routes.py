"""Annual reveal JSON endpoints; the app injects its session-based user lookup."""

from __future__ import annotations

from typing import Callable, Optional

from flask import Blueprint, abort, jsonify, request

from entries_access import can_view_entry, published_entries, serialize_entry
from errors import InvalidState, NotAMember, NotYetEligible
from extensions import db
from models import Couple, isoformat_or_none
from . import gate
from .stats import build_reveal_stats

UserProvider = Callable[[], Optional[dict]]


def create_reveal_blueprint(current_user_provider: UserProvider) -> Blueprint:
    """Factory so the main app can inject its session-based user lookup."""

    bp = Blueprint("reveal", __name__, url_prefix="/api/couples/<int:couple_id>/reveal")

    def _year_arg() -> Optional[int]:
        raw = request.args.get("year")
        if raw is None or raw == "":
            return None
        try:
            return int(raw)
        except ValueError:
            raise InvalidState(f"Year must be a number, got {raw!r}.") from None

    def _require_member(couple_id: int) -> tuple[Couple, int]:
        user = current_user_provider()
        if not user:
            abort(401)
        try:
            user_id = int(user.get("id"))
        except (TypeError, ValueError):
            abort(401)
        couple = db.session.get(Couple, couple_id)
        if couple is None:
            abort(404)
        if not couple.is_member(user_id):
            raise NotAMember("You are not a member of this couple.")
        return couple, user_id

    @bp.get("/status")
    def reveal_status(couple_id: int):
        couple, _ = _require_member(couple_id)
        return jsonify(gate.reveal_status(couple))

    @bp.post("")
    def trigger_reveal(couple_id: int):
        _require_member(couple_id)
        snapshot = gate.trigger_reveal(couple_id)
        return jsonify(snapshot.to_public_dict())

    @bp.get("/years")
    def revealed_years(couple_id: int):
        _require_member(couple_id)
        return jsonify(
            [
                {"year": year, "revealed_at": isoformat_or_none(revealed_at)}
                for year, revealed_at in gate.list_revealed_years(couple_id)
            ]
        )

    @bp.get("/<int:year>")
    def snapshot_for_year(couple_id: int, year: int):
        _require_member(couple_id)
        return jsonify(gate.get_snapshot(couple_id, year).to_public_dict())

    @bp.get("/stats")
    def live_stats(couple_id: int):
        couple, _ = _require_member(couple_id)
        if not couple.is_revealed:
            raise NotYetEligible("Stats unlock with the annual reveal.")
        year = _year_arg()
        return jsonify(build_reveal_stats(couple, year))

    @bp.get("/entries")
    def revealed_entries(couple_id: int):
        couple, user_id = _require_member(couple_id)
        if not couple.is_revealed:
            raise NotYetEligible("Partner entries unlock with the annual reveal.")
        year = _year_arg()
        entries = [
            entry
            for entry in published_entries(couple.id, year=year)
            if can_view_entry(couple, entry, user_id)
        ]
        return jsonify([serialize_entry(entry) for entry in entries])

    return bp
