"""Annual anniversary reveal: gate, statistics snapshot and history."""

from .routes import create_reveal_blueprint

__all__ = ["create_reveal_blueprint"]
