"""
Model mixins providing reusable functionality for Django models.

Available Mixins:
    SoftDeleteMixin: Soft delete support (is_deleted, deleted_at)

Usage:
    from core.models import BaseModel
    from core.model_mixins import SoftDeleteMixin

    class Message(SoftDeleteMixin, BaseModel):
        ...

Note:
    - Always list mixins before BaseModel in inheritance
    - Mixins are abstract and don't create database tables
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone


class SoftDeleteMixin(models.Model):
    """
    Soft delete support for models.

    Instead of permanently deleting records, marks them as deleted.
    Deleted rows stay visible to queries so callers can render a placeholder
    ("This message was deleted") in their original position.

    Fields:
        is_deleted: Boolean flag indicating soft delete status
        deleted_at: Timestamp when the record was soft deleted

    Subclasses that need to clear content on deletion override
    get_soft_delete_updates() to add their own field values.
    """

    is_deleted = models.BooleanField(
        default=False,
        db_index=True,
        help_text="Whether this record has been soft deleted",
    )
    deleted_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Timestamp when this record was soft deleted",
    )

    class Meta:
        abstract = True

    def get_soft_delete_updates(self) -> dict:
        """Field values written when the record is soft deleted."""
        return {"is_deleted": True, "deleted_at": timezone.now()}

    def soft_delete(self) -> None:
        """
        Mark this record as deleted.

        Applies get_soft_delete_updates() both to the row and to this
        instance. The write is a single UPDATE so concurrent field changes
        on the same row are not clobbered.
        """
        updates = self.get_soft_delete_updates()
        updates["updated_at"] = timezone.now()
        type(self).objects.filter(pk=self.pk).update(**updates)
        for field_name, value in updates.items():
            setattr(self, field_name, value)
