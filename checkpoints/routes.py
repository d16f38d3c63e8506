"""Checkpoint JSON endpoints; the app injects its session-based user lookup."""

from __future__ import annotations

from typing import Callable, Optional

from flask import Blueprint, abort, jsonify, request

from errors import NotAMember
from . import service

UserProvider = Callable[[], Optional[dict]]


def create_checkpoints_blueprint(current_user_provider: UserProvider) -> Blueprint:
    """Factory so the main app can inject its session-based user lookup."""

    bp = Blueprint("checkpoints", __name__, url_prefix="/api/couples/<int:couple_id>/checkpoints")

    def _current_user_id() -> int:
        user = current_user_provider()
        if not user:
            abort(401)
        try:
            return int(user.get("id"))
        except (TypeError, ValueError):
            abort(401)

    def _require_member(couple_id: int) -> int:
        user_id = _current_user_id()
        couple = service.load_couple(couple_id)
        if not couple.is_member(user_id):
            raise NotAMember("You are not a member of this couple.")
        return user_id

    @bp.get("/today")
    def checkpoint_today(couple_id: int):
        _require_member(couple_id)
        result = service.is_checkpoint_day(couple_id)
        return jsonify({"is_checkpoint_day": result["matched"], "checkpoints": result["configs"]})

    @bp.get("/next")
    def next_checkpoint(couple_id: int):
        _require_member(couple_id)
        return jsonify(service.get_next_checkpoint(couple_id))

    @bp.post("/entry")
    def checkpoint_entry(couple_id: int):
        user_id = _current_user_id()
        payload = request.get_json(silent=True) or {}
        config_id = _coerce_optional_int(payload.get("config_id"))
        result = service.get_checkpoint_entry(couple_id, user_id, config_id=config_id)
        return jsonify(result.to_dict())

    @bp.get("/history")
    def checkpoint_history(couple_id: int):
        user_id = _current_user_id()
        return jsonify(service.get_checkpoint_history(couple_id, user_id))

    @bp.get("/unrevealed-count")
    def unrevealed_count(couple_id: int):
        user_id = _require_member(couple_id)
        return jsonify({"count": service.get_unrevealed_count(couple_id, user_id)})

    @bp.get("/configs")
    def list_configs(couple_id: int):
        _require_member(couple_id)
        return jsonify([config.to_public_dict() for config in service.list_configs(couple_id)])

    @bp.post("/configs")
    def create_config(couple_id: int):
        _require_member(couple_id)
        payload = request.get_json(silent=True) or {}
        config = service.create_config(couple_id, payload)
        return jsonify(config.to_public_dict()), 201

    @bp.patch("/configs/<int:config_id>")
    def update_config(couple_id: int, config_id: int):
        _require_member(couple_id)
        updates = request.get_json(silent=True) or {}
        config = service.update_config(couple_id, config_id, updates)
        return jsonify(config.to_public_dict())

    @bp.delete("/configs/<int:config_id>")
    def delete_config(couple_id: int, config_id: int):
        _require_member(couple_id)
        service.delete_config(couple_id, config_id)
        return jsonify({"status": "ok"})

    return bp


def _coerce_optional_int(value) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        abort(400)
