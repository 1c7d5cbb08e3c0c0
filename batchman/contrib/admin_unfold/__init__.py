"""Batchman Admin with Unfold theme."""

__all__ = [
    "BaseModelAdmin",
    "format_quantity",
]


def __getattr__(name):
    """Lazy import to avoid circular imports during app loading."""
    if name == "BaseModelAdmin":
        from batchman.contrib.admin_unfold.base import BaseModelAdmin
        return BaseModelAdmin
    if name == "format_quantity":
        from batchman.contrib.admin_unfold.base import format_quantity
        return format_quantity
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
