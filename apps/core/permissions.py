"""
Staff roles and role-based permissions for the newsroom.

Maps StaffProfile.role to DRF permission classes.

Roles (increasing editorial authority):
- INTERN: drafts stories, submits them for journalist review
- JOURNALIST: reviews intern work, sends own stories for approval
- SUB_EDITOR: approves, sends for translation, publishes
- EDITOR: everything a sub-editor can, plus revision override
- ADMIN / SUPERADMIN: full access

Usage:
    from apps.core.permissions import IsStaff, IsSubEditorOrAbove

    class MyView(APIView):
        permission_classes = [IsAuthenticated, IsSubEditorOrAbove]
"""

import logging

from django.db import models
from rest_framework.permissions import BasePermission

logger = logging.getLogger(__name__)


class StaffRole(models.TextChoices):
    INTERN = 'INTERN', 'Intern'
    JOURNALIST = 'JOURNALIST', 'Journalist'
    SUB_EDITOR = 'SUB_EDITOR', 'Sub-Editor'
    EDITOR = 'EDITOR', 'Editor'
    ADMIN = 'ADMIN', 'Administrator'
    SUPERADMIN = 'SUPERADMIN', 'Super Administrator'


ROLE_LEVELS = {
    StaffRole.INTERN: 1,
    StaffRole.JOURNALIST: 2,
    StaffRole.SUB_EDITOR: 3,
    StaffRole.EDITOR: 4,
    StaffRole.ADMIN: 5,
    StaffRole.SUPERADMIN: 6,
}


def roles_at_least(minimum):
    """All roles with at least the authority of ``minimum``."""
    floor = ROLE_LEVELS[StaffRole(minimum)]
    return frozenset(role for role, level in ROLE_LEVELS.items() if level >= floor)


def get_staff_role(user):
    """
    Helper function to get a user's staff role.

    Returns None for anonymous users and users without a profile.
    """
    if not user or not user.is_authenticated:
        return None

    if user.is_superuser:
        return StaffRole.SUPERADMIN

    from apps.core.models import StaffProfile
    try:
        profile = StaffProfile.objects.get(user=user)
    except StaffProfile.DoesNotExist:
        logger.warning(f"User {user.pk} has no staff profile")
        return None
    return StaffRole(profile.role)


def has_role(user, required_role):
    """
    Check if user has at least the required role level.

    Role hierarchy: SUPERADMIN > ADMIN > EDITOR > SUB_EDITOR > JOURNALIST > INTERN
    """
    user_role = get_staff_role(user)
    if not user_role:
        return False

    return ROLE_LEVELS[user_role] >= ROLE_LEVELS[StaffRole(required_role)]


class RolePermission(BasePermission):
    """Base class for role-based permissions."""

    # Override in subclasses
    minimum_role = StaffRole.INTERN

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False
        return has_role(request.user, self.minimum_role)


class IsStaff(RolePermission):
    """Any user with a staff role."""
    minimum_role = StaffRole.INTERN
    message = "User has no staff role."


class IsSubEditorOrAbove(RolePermission):
    """
    Sub-editors and above.

    Sub-editors can approve stories, send them for translation and publish.
    """
    minimum_role = StaffRole.SUB_EDITOR
    message = "Sub-editor access required."


class IsEditorOrAbove(RolePermission):
    """Editors, admins and superadmins."""
    minimum_role = StaffRole.EDITOR
    message = "Editor access required."
