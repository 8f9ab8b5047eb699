"""
Workflow permission policy.

ACTION_POLICY maps each action to the roles that may invoke it. Ownership
and assignment rules (author of record, assigned reviewer, assigned
approver, assigned translator) are layered on top by ``check_ownership``.
"""

import logging
from typing import Dict, FrozenSet

from apps.core.exceptions import PermissionDeniedError
from apps.core.permissions import ROLE_LEVELS, StaffRole, roles_at_least
from apps.newsroom.state_machine import StoryAction, StoryStage, TranslationAction

logger = logging.getLogger(__name__)


ALL_ROLES = roles_at_least(StaffRole.INTERN)
JOURNALIST_AND_ABOVE = roles_at_least(StaffRole.JOURNALIST)
SUB_EDITOR_AND_ABOVE = roles_at_least(StaffRole.SUB_EDITOR)
EDITOR_AND_ABOVE = roles_at_least(StaffRole.EDITOR)


ACTION_POLICY: Dict[str, FrozenSet[StaffRole]] = {
    StoryAction.SUBMIT_FOR_REVIEW: frozenset({StaffRole.INTERN}),
    StoryAction.SEND_FOR_APPROVAL: JOURNALIST_AND_ABOVE,
    StoryAction.APPROVE_STORY: SUB_EDITOR_AND_ABOVE,
    StoryAction.SEND_FOR_TRANSLATION: SUB_EDITOR_AND_ABOVE,
    StoryAction.MARK_AS_TRANSLATED: SUB_EDITOR_AND_ABOVE,
    StoryAction.PUBLISH_STORY: SUB_EDITOR_AND_ABOVE,
    StoryAction.REQUEST_REVISION: JOURNALIST_AND_ABOVE,
    StoryAction.RESUME_REVISION: ALL_ROLES,
    # Translation requests; the assigned translator is let through by ownership
    TranslationAction.START_TRANSLATION: ALL_ROLES,
    TranslationAction.SUBMIT_TRANSLATION: ALL_ROLES,
    TranslationAction.RESUME_TRANSLATION: ALL_ROLES,
    TranslationAction.APPROVE_TRANSLATION: SUB_EDITOR_AND_ABOVE,
    TranslationAction.REJECT_TRANSLATION: SUB_EDITOR_AND_ABOVE,
}


def _level(role) -> int:
    return ROLE_LEVELS.get(role, 0) if role else 0


# =============================================================================
# Role predicates
# =============================================================================

def can_review_story(role) -> bool:
    return _level(role) >= ROLE_LEVELS[StaffRole.JOURNALIST]


def can_approve_story_stage(role) -> bool:
    return _level(role) >= ROLE_LEVELS[StaffRole.SUB_EDITOR]


def can_send_for_translation(role) -> bool:
    return _level(role) >= ROLE_LEVELS[StaffRole.SUB_EDITOR]


def can_approve_translation(role) -> bool:
    return _level(role) >= ROLE_LEVELS[StaffRole.SUB_EDITOR]


def can_override_assignment(role) -> bool:
    """Editors and above may act on any story regardless of assignment."""
    return _level(role) >= ROLE_LEVELS[StaffRole.EDITOR]


def can_request_revision(role, user_id, story) -> bool:
    """
    Whether the actor may send a story back for revision.

    The assigned reviewer may at NEEDS_JOURNALIST_REVIEW, the assigned
    approver at NEEDS_SUB_EDITOR_APPROVAL, and editors and above always.
    """
    if can_override_assignment(role):
        return True
    if story.stage == StoryStage.NEEDS_JOURNALIST_REVIEW:
        return can_review_story(role) and story.assigned_reviewer_id == user_id
    if story.stage == StoryStage.NEEDS_SUB_EDITOR_APPROVAL:
        return can_approve_story_stage(role) and story.assigned_approver_id == user_id
    return False


def can_work_on_translation(role, user_id, translation) -> bool:
    """The assigned translator, or sub-editors and above."""
    return translation.assigned_to_id == user_id or can_approve_story_stage(role)


def _as_action(action):
    # Enum members hash by name, so plain strings must be converted before lookup
    for enum_class in (StoryAction, TranslationAction):
        try:
            return enum_class(action)
        except ValueError:
            continue
    return action


def is_role_allowed(action, role) -> bool:
    """Pure role gate from ACTION_POLICY."""
    return role in ACTION_POLICY.get(_as_action(action), frozenset())


def check_role(action, role) -> None:
    if not is_role_allowed(action, role):
        raise PermissionDeniedError(
            f"Role {role or 'none'} may not {str(getattr(action, 'value', action)).replace('_', ' ')}",
            details={'action': getattr(action, 'value', action), 'role': role},
        )


# =============================================================================
# Ownership and assignment
# =============================================================================

def ownership_violation(action, actor, story, has_open_revision_for_actor: bool = False):
    """
    Return a denial message when the actor's relationship to the story
    does not permit the action, otherwise None.
    """
    action = StoryAction(action)
    role = actor.role

    if action == StoryAction.SUBMIT_FOR_REVIEW:
        if story.author_id != actor.user_id:
            return "Only the author can submit a story for review"

    elif action == StoryAction.SEND_FOR_APPROVAL:
        if role == StaffRole.JOURNALIST:
            is_author = story.author_id == actor.user_id and story.stage == StoryStage.DRAFT
            is_reviewer = story.assigned_reviewer_id == actor.user_id
            if not (is_author or is_reviewer):
                return "Only the author or the assigned reviewer can send this story for approval"

    elif action == StoryAction.REQUEST_REVISION:
        if story.stage in (StoryStage.NEEDS_JOURNALIST_REVIEW, StoryStage.NEEDS_SUB_EDITOR_APPROVAL):
            if not can_request_revision(role, actor.user_id, story):
                return "Only the assigned reviewer or approver can request a revision"

    elif action == StoryAction.RESUME_REVISION:
        if not can_override_assignment(role):
            if story.author_id != actor.user_id and not has_open_revision_for_actor:
                return "Only the author or the revision assignee can resume this story"

    return None


def check_ownership(action, actor, story, has_open_revision_for_actor: bool = False) -> None:
    message = ownership_violation(action, actor, story, has_open_revision_for_actor)
    if message:
        logger.info(f"Denied {action} on story {story.pk} for user {actor.user_id}: {message}")
        raise PermissionDeniedError(message, details={'action': StoryAction(action).value})
