"""Checkpoint sneak peeks: recurring single-entry disclosures before the annual reveal."""

from .routes import create_checkpoints_blueprint

__all__ = ["create_checkpoints_blueprint"]
