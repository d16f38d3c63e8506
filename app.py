import os
from datetime import timedelta
from pathlib import Path
from typing import Optional

from flask import Flask, jsonify, request, session
from werkzeug.exceptions import HTTPException

from extensions import db
from errors import DisclosureError
from checkpoints import create_checkpoints_blueprint
from reveal import create_reveal_blueprint

# Table registration for db.create_all()
import models  # noqa: F401
import checkpoints.models  # noqa: F401
import reveal.models  # noqa: F401


# ====== Feature toggle ======
def _env_flag(name: str, default: bool) -> bool:
    """Parse truthy feature-toggle values from the environment."""
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(app: Flask, name: str, default: int, minimum: int) -> int:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return max(minimum, int(raw))
    except ValueError:
        app.logger.warning("Invalid %s value: %r. Using default %s.", name, raw, default)
        return default


MAINTENANCE_MODE = _env_flag("MAINTENANCE_MODE", False)  # Change to True to pause the API
DISCLOSURE_TIMEZONE = os.environ.get("DISCLOSURE_TIMEZONE", "UTC")
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

DATA_DIR = Path(__file__).resolve().parent / "data"
SQLITE_PATH = DATA_DIR / "app.db"


def get_current_partner() -> Optional[dict]:
    """Return the logged-in partner from the session, or None."""
    user_id = session.get("user_id")
    if user_id is None:
        return None
    return {"id": user_id}


# ====== Flask setup ======
def create_app(config: Optional[dict] = None) -> Flask:
    app = Flask(__name__)
    app.secret_key = os.environ.get("SECRET_KEY") or os.urandom(24)
    app.permanent_session_lifetime = timedelta(days=365)
    app.logger.setLevel(LOG_LEVEL)

    if config:
        app.config.update(config)

    app.config.setdefault("MAINTENANCE_MODE", MAINTENANCE_MODE)
    app.config.setdefault("DISCLOSURE_TIMEZONE", DISCLOSURE_TIMEZONE)
    app.config.setdefault("CHECKPOINT_MAX_DRAWS", _env_int(app, "CHECKPOINT_MAX_DRAWS", 3, 1))

    database_url = os.environ.get("DATABASE_URL")
    if not database_url and "SQLALCHEMY_DATABASE_URI" not in app.config:
        DATA_DIR.mkdir(parents=True, exist_ok=True)
        database_url = f"sqlite:///{SQLITE_PATH}"
    app.config.setdefault("SQLALCHEMY_DATABASE_URI", database_url)
    app.config.setdefault("SQLALCHEMY_TRACK_MODIFICATIONS", False)
    db.init_app(app)

    @app.errorhandler(DisclosureError)
    def handle_disclosure_error(err: DisclosureError):
        return jsonify(err.payload), err.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(err: HTTPException):
        status_code = err.code or 500
        return jsonify({"error": (err.name or "error").lower().replace(" ", "_"), "message": err.description}), status_code

    @app.before_request
    def check_maintenance_mode():
        if request.endpoint in {"static", "health"}:
            return None
        if app.config.get("MAINTENANCE_MODE"):
            return jsonify({"error": "maintenance", "message": "Back soon."}), 503
        return None

    @app.get("/health")
    def health():
        return jsonify({"status": "ok"})

    app.register_blueprint(create_reveal_blueprint(get_current_partner))
    app.register_blueprint(create_checkpoints_blueprint(get_current_partner))

    with app.app_context():
        db.create_all()

    return app


# ====== Entrypoint ======
if __name__ == "__main__":
    create_app().run(host="0.0.0.0", port=int(os.environ.get("PORT", 8080)), debug=True)
