"""
Core models for the newsroom project.
Base classes, staff profiles and the audit trail.
"""

import uuid
from django.conf import settings
from django.db import models
from django.db.models.signals import post_save
from django.dispatch import receiver
from django.utils import timezone

from apps.core.permissions import StaffRole


class BaseModel(models.Model):
    """
    Abstract base model with common fields for all newsroom models.
    Provides UUID primary key and timestamp tracking.
    """
    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        verbose_name='ID',
        help_text='Unique identifier (UUID)'
    )

    created_at = models.DateTimeField(
        default=timezone.now,
        editable=False,
        verbose_name='Created At',
        help_text='Timestamp when record was created'
    )

    updated_at = models.DateTimeField(
        auto_now=True,
        verbose_name='Updated At',
        help_text='Timestamp when record was last updated'
    )

    class Meta:
        abstract = True
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.__class__.__name__} ({self.id})"


class StaffProfile(BaseModel):
    """
    Newsroom staff profile.
    Linked 1:1 with Django User model; carries the editorial role.
    """

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='staff_profile',
        verbose_name='User',
        help_text='The associated Django user account'
    )

    role = models.CharField(
        max_length=20,
        choices=StaffRole.choices,
        default=StaffRole.INTERN,
        db_index=True,
        verbose_name='Role',
        help_text='Staff role determining workflow permissions'
    )

    class Meta:
        db_table = 'staff_profiles'
        verbose_name = 'Staff Profile'
        verbose_name_plural = 'Staff Profiles'

    def __str__(self):
        return f"{self.user.username} ({self.role})"


@receiver(post_save, sender=settings.AUTH_USER_MODEL)
def create_staff_profile(sender, instance, created, **kwargs):
    """Auto-create StaffProfile when a new User is created."""
    if created:
        StaffProfile.objects.get_or_create(user=instance)


class AuditLog(models.Model):
    """
    Append-only record of a state-changing operation.

    Rows are written inside the same transaction as the mutation they
    describe and are never updated afterwards.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='audit_logs',
        verbose_name='Actor'
    )

    action = models.CharField(
        max_length=64,
        db_index=True,
        verbose_name='Action',
        help_text='Action name, e.g. APPROVE_STORY or AUTO_PUBLISH_TRANSLATION'
    )

    target_type = models.CharField(max_length=32, blank=True, verbose_name='Target Type')
    target_id = models.CharField(max_length=64, blank=True, db_index=True, verbose_name='Target ID')

    previous_state = models.CharField(max_length=32, blank=True, verbose_name='Previous State')
    new_state = models.CharField(max_length=32, blank=True, verbose_name='New State')

    details = models.JSONField(default=dict, blank=True, verbose_name='Details')

    # Request metadata
    ip_address = models.CharField(max_length=64, blank=True, verbose_name='IP Address')
    user_agent = models.TextField(blank=True, verbose_name='User Agent')
    request_id = models.CharField(max_length=64, blank=True, verbose_name='Request ID')

    created_at = models.DateTimeField(default=timezone.now, editable=False, db_index=True)

    class Meta:
        db_table = 'audit_logs'
        verbose_name = 'Audit Log'
        verbose_name_plural = 'Audit Logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['target_type', 'target_id'], name='audit_target_idx'),
            models.Index(fields=['action', 'created_at'], name='audit_action_created_idx'),
        ]

    def __str__(self):
        return f"{self.action} {self.target_type}:{self.target_id}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise RuntimeError("Audit log entries are append-only")
        super().save(*args, **kwargs)
