"""
Editorial Stage State Machine.

Pure definitions of the story and translation-request lifecycles:
stages, actions, the allowed edges between stages, and the rules that
decide which stage an action leads to for a given story.

Story stages:
    DRAFT → NEEDS_JOURNALIST_REVIEW → NEEDS_SUB_EDITOR_APPROVAL → APPROVED → TRANSLATED → PUBLISHED
      │                ↓                        ↓
      │          NEEDS_REVISION ←───────────────┘
      │                ↓
      └──────────── DRAFT

    Journalist-authored drafts go straight to NEEDS_SUB_EDITOR_APPROVAL;
    drafts by sub-editors and above can be approved directly. Translation
    stories skip APPROVED and land on TRANSLATED when approved.

Translation requests:
    PENDING → IN_PROGRESS → NEEDS_REVIEW → APPROVED → PUBLISHED
                   ↑                ↓
                   └─────────── REJECTED

Nothing in this module touches the database.
"""

import logging
from enum import Enum
from typing import Dict, Set

from django.db import models

from apps.core.exceptions import InvalidTransitionError
from apps.core.permissions import StaffRole, roles_at_least

logger = logging.getLogger(__name__)


class StoryStage(models.TextChoices):
    DRAFT = 'DRAFT', 'Draft'
    NEEDS_JOURNALIST_REVIEW = 'NEEDS_JOURNALIST_REVIEW', 'Needs Journalist Review'
    NEEDS_SUB_EDITOR_APPROVAL = 'NEEDS_SUB_EDITOR_APPROVAL', 'Needs Sub-Editor Approval'
    NEEDS_REVISION = 'NEEDS_REVISION', 'Needs Revision'
    APPROVED = 'APPROVED', 'Approved'
    TRANSLATED = 'TRANSLATED', 'Translated'
    PUBLISHED = 'PUBLISHED', 'Published'

    @property
    def is_terminal(self) -> bool:
        return self == StoryStage.PUBLISHED


class StoryStatus(models.TextChoices):
    """Legacy status column, kept in step with the stage."""
    DRAFT = 'DRAFT', 'Draft'
    IN_REVIEW = 'IN_REVIEW', 'In Review'
    NEEDS_REVISION = 'NEEDS_REVISION', 'Needs Revision'
    PENDING_APPROVAL = 'PENDING_APPROVAL', 'Pending Approval'
    PENDING_TRANSLATION = 'PENDING_TRANSLATION', 'Pending Translation'
    APPROVED = 'APPROVED', 'Approved'
    READY_TO_PUBLISH = 'READY_TO_PUBLISH', 'Ready to Publish'
    PUBLISHED = 'PUBLISHED', 'Published'
    ARCHIVED = 'ARCHIVED', 'Archived'


class TranslationStatus(models.TextChoices):
    PENDING = 'PENDING', 'Pending'
    IN_PROGRESS = 'IN_PROGRESS', 'In Progress'
    NEEDS_REVIEW = 'NEEDS_REVIEW', 'Needs Review'
    APPROVED = 'APPROVED', 'Approved'
    REJECTED = 'REJECTED', 'Rejected'
    PUBLISHED = 'PUBLISHED', 'Published'


class Language(models.TextChoices):
    ENGLISH = 'ENGLISH', 'English'
    AFRIKAANS = 'AFRIKAANS', 'Afrikaans'
    XHOSA = 'XHOSA', 'Xhosa'
    ZULU = 'ZULU', 'Zulu'


class ClassificationType(models.TextChoices):
    LANGUAGE = 'LANGUAGE', 'Language'
    RELIGION = 'RELIGION', 'Religion'
    LOCALITY = 'LOCALITY', 'Locality'
    GENERAL = 'GENERAL', 'General'


class StoryAction(str, Enum):
    """Actions that move a story between stages."""
    SUBMIT_FOR_REVIEW = 'submit_for_review'
    SEND_FOR_APPROVAL = 'send_for_approval'
    APPROVE_STORY = 'approve_story'
    SEND_FOR_TRANSLATION = 'send_for_translation'
    MARK_AS_TRANSLATED = 'mark_as_translated'
    PUBLISH_STORY = 'publish_story'
    REQUEST_REVISION = 'request_revision'
    RESUME_REVISION = 'resume_revision'

    @property
    def audit_name(self) -> str:
        return self.value.upper()


class TranslationAction(str, Enum):
    """Actions on a translation request."""
    START_TRANSLATION = 'start_translation'
    SUBMIT_TRANSLATION = 'submit_translation'
    APPROVE_TRANSLATION = 'approve_translation'
    REJECT_TRANSLATION = 'reject_translation'
    RESUME_TRANSLATION = 'resume_translation'

    @property
    def audit_name(self) -> str:
        return self.value.upper()


STAGE_TO_STATUS: Dict[StoryStage, StoryStatus] = {
    StoryStage.DRAFT: StoryStatus.DRAFT,
    StoryStage.NEEDS_JOURNALIST_REVIEW: StoryStatus.IN_REVIEW,
    StoryStage.NEEDS_SUB_EDITOR_APPROVAL: StoryStatus.PENDING_APPROVAL,
    StoryStage.NEEDS_REVISION: StoryStatus.NEEDS_REVISION,
    StoryStage.APPROVED: StoryStatus.APPROVED,
    StoryStage.TRANSLATED: StoryStatus.READY_TO_PUBLISH,
    StoryStage.PUBLISHED: StoryStatus.PUBLISHED,
}


# Edges reachable through an actor's action
VALID_TRANSITIONS: Dict[StoryStage, Set[StoryStage]] = {
    StoryStage.DRAFT: {
        StoryStage.NEEDS_JOURNALIST_REVIEW,
        StoryStage.NEEDS_SUB_EDITOR_APPROVAL,
        StoryStage.APPROVED,
        StoryStage.TRANSLATED,  # translation stories approved from draft
    },
    StoryStage.NEEDS_JOURNALIST_REVIEW: {
        StoryStage.NEEDS_SUB_EDITOR_APPROVAL,
        StoryStage.NEEDS_REVISION,
    },
    StoryStage.NEEDS_SUB_EDITOR_APPROVAL: {
        StoryStage.APPROVED,
        StoryStage.TRANSLATED,  # translation stories
        StoryStage.NEEDS_REVISION,
    },
    StoryStage.NEEDS_REVISION: {StoryStage.DRAFT},
    StoryStage.APPROVED: {StoryStage.TRANSLATED},
    StoryStage.TRANSLATED: {StoryStage.PUBLISHED},
    StoryStage.PUBLISHED: set(),  # Terminal state
}

# Edges applied by cascades: auto-publish of translation stories and
# auto-advance of an original whose translations are complete
CASCADE_TRANSITIONS: Dict[StoryStage, Set[StoryStage]] = {
    stage: {StoryStage.PUBLISHED} for stage in StoryStage if stage != StoryStage.PUBLISHED
}
CASCADE_TRANSITIONS[StoryStage.APPROVED] = {StoryStage.TRANSLATED, StoryStage.PUBLISHED}

TRANSLATION_TRANSITIONS: Dict[TranslationStatus, Set[TranslationStatus]] = {
    TranslationStatus.PENDING: {TranslationStatus.IN_PROGRESS},
    TranslationStatus.IN_PROGRESS: {TranslationStatus.NEEDS_REVIEW},
    TranslationStatus.NEEDS_REVIEW: {TranslationStatus.APPROVED, TranslationStatus.REJECTED},
    TranslationStatus.REJECTED: {TranslationStatus.IN_PROGRESS},
    TranslationStatus.APPROVED: {TranslationStatus.PUBLISHED},
    TranslationStatus.PUBLISHED: set(),
}

TRANSLATION_ACTION_SOURCES: Dict[TranslationAction, TranslationStatus] = {
    TranslationAction.START_TRANSLATION: TranslationStatus.PENDING,
    TranslationAction.SUBMIT_TRANSLATION: TranslationStatus.IN_PROGRESS,
    TranslationAction.APPROVE_TRANSLATION: TranslationStatus.NEEDS_REVIEW,
    TranslationAction.REJECT_TRANSLATION: TranslationStatus.NEEDS_REVIEW,
    TranslationAction.RESUME_TRANSLATION: TranslationStatus.REJECTED,
}

TRANSLATION_ACTION_TARGETS: Dict[TranslationAction, TranslationStatus] = {
    TranslationAction.START_TRANSLATION: TranslationStatus.IN_PROGRESS,
    TranslationAction.SUBMIT_TRANSLATION: TranslationStatus.NEEDS_REVIEW,
    TranslationAction.APPROVE_TRANSLATION: TranslationStatus.APPROVED,
    TranslationAction.REJECT_TRANSLATION: TranslationStatus.REJECTED,
    TranslationAction.RESUME_TRANSLATION: TranslationStatus.IN_PROGRESS,
}

# Stages at which a translation story counts as done
COMPLETE_STAGES = frozenset({StoryStage.APPROVED, StoryStage.TRANSLATED, StoryStage.PUBLISHED})
COMPLETE_TRANSLATION_STATUSES = frozenset({TranslationStatus.APPROVED, TranslationStatus.PUBLISHED})

SENIOR_AUTHOR_ROLES = roles_at_least(StaffRole.SUB_EDITOR)


def can_transition(from_stage, to_stage, cascade: bool = False) -> bool:
    """Check whether a stage change follows a defined edge."""
    table = CASCADE_TRANSITIONS if cascade else VALID_TRANSITIONS
    return StoryStage(to_stage) in table.get(StoryStage(from_stage), set())


def check_transition(from_stage, to_stage, cascade: bool = False) -> None:
    """
    Validate a stage change against the transition table.

    Raises:
        InvalidTransitionError: If there is no edge from ``from_stage`` to ``to_stage``
    """
    if not can_transition(from_stage, to_stage, cascade=cascade):
        raise InvalidTransitionError(
            f"Cannot move story from {from_stage} to {to_stage}",
            details={'current_stage': str(from_stage), 'target_stage': str(to_stage)},
        )


def check_translation_transition(from_status, to_status) -> None:
    if TranslationStatus(to_status) not in TRANSLATION_TRANSITIONS[TranslationStatus(from_status)]:
        raise InvalidTransitionError(
            f"Cannot move translation from {from_status} to {to_status}",
            details={'current_status': str(from_status), 'target_status': str(to_status)},
        )


def _stage_error(message: str, stage) -> InvalidTransitionError:
    return InvalidTransitionError(message, details={'current_stage': str(stage)})


def resolve_target_stage(action, stage, author_role, is_translation: bool = False) -> StoryStage:
    """
    Work out the stage an action leads to from the story's current position.

    Legality depends on the current stage and on the role the story was
    authored under.

    Args:
        action: StoryAction (or its string value)
        stage: Current story stage
        author_role: Role snapshot taken when the story was created
        is_translation: Whether the story is a translation of another story

    Returns:
        The stage the story moves to

    Raises:
        InvalidTransitionError: If the action is not legal from ``stage``;
            the message names the current stage
    """
    action = StoryAction(action)
    stage = StoryStage(stage)

    if action == StoryAction.SUBMIT_FOR_REVIEW:
        if author_role != StaffRole.INTERN:
            raise _stage_error("Only intern stories need journalist review", stage)
        if stage != StoryStage.DRAFT:
            raise _stage_error(f"Cannot submit for review from {stage} stage", stage)
        target = StoryStage.NEEDS_JOURNALIST_REVIEW

    elif action == StoryAction.SEND_FOR_APPROVAL:
        allowed_from = {
            StaffRole.INTERN: StoryStage.NEEDS_JOURNALIST_REVIEW,
            StaffRole.JOURNALIST: StoryStage.DRAFT,
        }.get(author_role)
        if stage != allowed_from:
            raise _stage_error(f"Cannot send for approval from {stage} stage", stage)
        target = StoryStage.NEEDS_SUB_EDITOR_APPROVAL

    elif action == StoryAction.APPROVE_STORY:
        direct = stage == StoryStage.DRAFT and author_role in SENIOR_AUTHOR_ROLES
        if stage != StoryStage.NEEDS_SUB_EDITOR_APPROVAL and not direct:
            raise _stage_error(f"Cannot approve story from {stage} stage", stage)
        # A translation has no translation step of its own
        target = StoryStage.TRANSLATED if is_translation else StoryStage.APPROVED

    elif action in (StoryAction.SEND_FOR_TRANSLATION, StoryAction.MARK_AS_TRANSLATED):
        verb = "send for translation" if action == StoryAction.SEND_FOR_TRANSLATION else "mark as translated"
        if is_translation:
            raise _stage_error(f"Cannot {verb} a translation story", stage)
        if stage != StoryStage.APPROVED:
            raise _stage_error(f"Cannot {verb} from {stage} stage", stage)
        # Sending for translation leaves the story at APPROVED
        target = StoryStage.APPROVED if action == StoryAction.SEND_FOR_TRANSLATION else StoryStage.TRANSLATED

    elif action == StoryAction.PUBLISH_STORY:
        if stage != StoryStage.TRANSLATED:
            raise _stage_error(
                f"Cannot publish story from {stage} stage. Story must be in TRANSLATED stage.",
                stage,
            )
        target = StoryStage.PUBLISHED

    elif action == StoryAction.REQUEST_REVISION:
        if stage not in (StoryStage.NEEDS_JOURNALIST_REVIEW, StoryStage.NEEDS_SUB_EDITOR_APPROVAL):
            raise _stage_error(f"Cannot request revision from {stage} stage", stage)
        target = StoryStage.NEEDS_REVISION

    else:  # RESUME_REVISION
        if stage != StoryStage.NEEDS_REVISION:
            raise _stage_error(f"Cannot resume revision from {stage} stage", stage)
        target = StoryStage.DRAFT

    if target != stage:
        check_transition(stage, target)
    return target


def resolve_translation_status(action, status) -> TranslationStatus:
    """Target status for a translation-request action, or InvalidTransitionError."""
    action = TranslationAction(action)
    status = TranslationStatus(status)
    if status != TRANSLATION_ACTION_SOURCES[action]:
        raise InvalidTransitionError(
            f"Cannot {action.value.replace('_', ' ')} from {status} status",
            details={'current_status': str(status)},
        )
    target = TRANSLATION_ACTION_TARGETS[action]
    check_translation_transition(status, target)
    return target
