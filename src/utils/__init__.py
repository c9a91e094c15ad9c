"""Small shared helpers."""

from src.utils.ids import new_id


__all__ = ["new_id"]
