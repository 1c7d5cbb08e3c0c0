"""
Base classes for Unfold admin in Batchman.

Provides BaseModelAdmin with sensible defaults for textarea fields,
a read-only variant and quantity formatting.
"""

from decimal import Decimal

from django import forms
from django.contrib.admin.widgets import AdminTextareaWidget
from unfold.admin import ModelAdmin
from unfold.widgets import UnfoldAdminTextareaWidget


def format_quantity(value: Decimal | None, decimal_places: int = 3) -> str:
    """
    Format a quantity value.

    Args:
        value: Decimal value to format
        decimal_places: Number of decimal places (default: 3, as stored)

    Returns:
        Formatted string (e.g., "10.500"), "-" for None
    """
    if value is None:
        return "-"
    return f"{value:.{decimal_places}f}"


class BaseModelAdmin(ModelAdmin):
    """
    ModelAdmin base with sensible defaults.

    Textarea widgets (TextField, JSONField) get half the height and the
    same max width as the other form fields.
    """

    compressed_fields = True

    def get_form(self, request, obj=None, **kwargs):
        form = super().get_form(request, obj, **kwargs)

        for field in form.base_fields.values():
            widget = field.widget
            if not isinstance(
                widget, (forms.Textarea, AdminTextareaWidget, UnfoldAdminTextareaWidget)
            ):
                continue

            style_parts = [
                s for s in widget.attrs.get("style", "").split(";")
                if s.strip() and "height" not in s.lower() and "width" not in s.lower()
            ]
            style_parts.append("height: 50%; max-height: 50%")
            style_parts.append("width: 100%; max-width: 42rem")
            widget.attrs["style"] = "; ".join(s.strip() for s in style_parts)

            try:
                rows = int(widget.attrs.get("rows", 4))
            except (ValueError, TypeError):
                rows = 4
            widget.attrs["rows"] = max(1, rows // 2)

        return form


class ReadOnlyModelAdmin(BaseModelAdmin):
    """No add, change or delete. For the ledger and its projections."""

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
