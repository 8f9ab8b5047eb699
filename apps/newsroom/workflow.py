"""
Stage Transition Engine.

Validates and applies workflow actions on stories and translation requests.
Each call runs as one ``transaction.atomic()`` unit: the primary update,
any cascaded updates, and one audit record per state change commit or roll
back together.

Validation order (first failure wins):
    1. No actor                                  -> UnauthorizedError
    2. Malformed payload                         -> ValidationError
    3. Role not in ACTION_POLICY                 -> PermissionDeniedError
    4. Entity missing                            -> NotFoundError
    5. Ownership / assignment                    -> PermissionDeniedError
    6. Action illegal from the current stage     -> InvalidTransitionError
    7. Missing payload items or required fields  -> PreconditionFailedError

Database failures roll the transaction back and surface as
TransientStoreError, which is safe to retry.

Rows are locked in a fixed order: the original story first, then the
translation story or translation request.

Usage:
    from apps.newsroom.workflow import Actor, apply_transition

    story = apply_transition(
        story_id,
        'send_for_approval',
        Actor.from_user(request.user),
        {'assigned_user_id': sub_editor.pk},
    )
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError, transaction
from django.utils import timezone

from apps.core.audit import RequestMetadata, record_audit
from apps.core.exceptions import (
    InvalidTransitionError,
    NewsroomException,
    NotFoundError,
    PermissionDeniedError,
    PreconditionFailedError,
    TransientStoreError,
    UnauthorizedError,
    ValidationError,
)
from apps.core.metrics import increment_stage_transition, observe_transition_duration
from apps.core.permissions import ROLE_LEVELS, StaffRole, get_staff_role
from apps.newsroom import cascades
from apps.newsroom.models import Classification, RevisionRequest, Story, Translation
from apps.newsroom.policy import (
    can_override_assignment,
    can_work_on_translation,
    check_ownership,
    check_role,
    is_role_allowed,
    ownership_violation,
)
from apps.newsroom.serializers import (
    ReassignSerializer,
    StageTransitionSerializer,
    TranslationTransitionSerializer,
)
from apps.newsroom.state_machine import (
    ClassificationType,
    Language,
    StoryAction,
    StoryStage,
    StoryStatus,
    TranslationAction,
    TranslationStatus,
    resolve_target_stage,
    resolve_translation_status,
)

logger = logging.getLogger(__name__)

User = get_user_model()

REASSIGN_RULES = {
    # kind: (stage required, minimum role to reassign, minimum role of assignee, story field)
    'reviewer': (StoryStage.NEEDS_JOURNALIST_REVIEW, StaffRole.SUB_EDITOR, StaffRole.JOURNALIST, 'assigned_reviewer'),
    'approver': (StoryStage.NEEDS_SUB_EDITOR_APPROVAL, StaffRole.SUB_EDITOR, StaffRole.SUB_EDITOR, 'assigned_approver'),
}


@dataclass(frozen=True)
class Actor:
    """The user performing a workflow action and their staff role."""
    user_id: Any
    role: Optional[str]

    @classmethod
    def from_user(cls, user) -> Optional['Actor']:
        if user is None or not user.is_authenticated:
            return None
        return cls(user_id=user.pk, role=get_staff_role(user))


@dataclass
class TransitionContext:
    """State shared by the steps of one story transition."""
    story: Story
    actor: Actor
    action: StoryAction
    data: Dict[str, Any]
    previous_stage: str
    target_stage: StoryStage
    request_meta: Optional[RequestMetadata] = None
    now: Any = field(default_factory=timezone.now)
    audit_details: Dict[str, Any] = field(default_factory=dict)


# =============================================================================
# Helpers
# =============================================================================

def _action_label(action, enum_class) -> str:
    value = getattr(action, 'value', action)
    return value if value in {a.value for a in enum_class} else 'unknown'


@contextmanager
def _tracked(label):
    """Record duration and outcome of one engine call."""
    with observe_transition_duration():
        try:
            yield
        except NewsroomException as exc:
            increment_stage_transition(label, exc.kind.value.lower())
            raise
        increment_stage_transition(label, 'success')


def _run_atomic(func, *args):
    """Run ``func`` in a transaction; database failures become TransientStoreError."""
    try:
        with transaction.atomic():
            return func(*args)
    except DatabaseError as exc:
        logger.exception(f"Workflow transaction rolled back: {exc}")
        raise TransientStoreError(details={'reason': type(exc).__name__}) from exc


def _require_actor(actor):
    if actor is None or actor.user_id is None:
        raise UnauthorizedError("Authentication required")


def _validate_payload(serializer_class, data) -> Dict[str, Any]:
    serializer = serializer_class(data=data)
    if not serializer.is_valid():
        raise ValidationError("Invalid request payload", details=serializer.errors)
    return serializer.validated_data


def _get_user(user_id, missing_message):
    """Resolve an assignee id, or PreconditionFailedError."""
    if user_id in (None, ''):
        raise PreconditionFailedError(missing_message)
    try:
        return User.objects.get(pk=user_id)
    except (User.DoesNotExist, ValueError, TypeError, DjangoValidationError):
        raise PreconditionFailedError(
            f"Assigned user {user_id} does not exist",
            details={'user_id': str(user_id)},
        )


def _lock_story(story_id) -> Story:
    """
    Lock and return a story, locking its original first when it is a
    translation story.
    """
    try:
        snapshot = Story.objects.filter(pk=story_id).values('original_story_id').first()
    except (ValueError, DjangoValidationError):
        snapshot = None
    if snapshot is None:
        raise NotFoundError(f"Story {story_id} not found")

    if snapshot['original_story_id']:
        list(Story.objects.select_for_update().filter(pk=snapshot['original_story_id']))

    try:
        return Story.objects.select_for_update().get(pk=story_id)
    except Story.DoesNotExist:
        raise NotFoundError(f"Story {story_id} not found")


def _load_story_for_response(story_id) -> Story:
    return (
        Story.objects
        .select_related('author', 'assigned_reviewer', 'assigned_approver', 'category', 'published_by')
        .prefetch_related('tags', 'classifications')
        .get(pk=story_id)
    )


def _has_open_revision(story, user_id) -> bool:
    return RevisionRequest.objects.filter(
        story=story, assigned_to_id=user_id, resolved_at__isnull=True
    ).exists()


# =============================================================================
# Story action handlers
# =============================================================================

def _submit_for_review(ctx: TransitionContext):
    reviewer = _get_user(ctx.data.get('assigned_user_id'), "Must assign a journalist for review")
    ctx.story.assigned_reviewer = reviewer
    ctx.story.author_checklist = ctx.data.get('checklist_data') or {}
    ctx.audit_details['assigned_reviewer_id'] = str(reviewer.pk)


def _send_for_approval(ctx: TransitionContext):
    approver = _get_user(ctx.data.get('assigned_user_id'), "Must assign a sub-editor for approval")
    ctx.story.assigned_approver = approver
    ctx.story.reviewer_checklist = ctx.data.get('checklist_data') or {}
    ctx.audit_details['assigned_approver_id'] = str(approver.pk)


def _approve_story(ctx: TransitionContext):
    story = ctx.story
    if not story.category_id:
        raise PreconditionFailedError(
            "Story must have a category before approval",
            details={'missing': 'category'},
        )
    types = story.classification_types()
    if ClassificationType.LANGUAGE not in types:
        raise PreconditionFailedError(
            "Story must have a language classification before approval",
            details={'missing': 'language_classification'},
        )
    if ClassificationType.RELIGION not in types:
        raise PreconditionFailedError(
            "Story must have a religion classification before approval",
            details={'missing': 'religion_classification'},
        )
    story.approver_checklist = ctx.data.get('checklist_data') or {}


def _send_for_translation(ctx: TransitionContext):
    story = ctx.story
    pairs = ctx.data.get('translation_languages') or []
    if not pairs:
        raise PreconditionFailedError("Must specify translation languages and translators")

    languages = [pair['language'] for pair in pairs]
    if story.language in languages:
        raise PreconditionFailedError(
            f"Story is already written in {story.language}",
            details={'language': story.language},
        )
    already_requested = sorted(set(
        Translation.objects.filter(original_story=story, target_language__in=languages)
        .values_list('target_language', flat=True)
    ))
    if already_requested:
        raise PreconditionFailedError(
            f"Translation already requested for: {', '.join(already_requested)}",
            details={'languages': already_requested},
        )

    translators = [
        _get_user(pair['translator_id'], "Must assign a translator for each language")
        for pair in pairs
    ]
    created = Translation.objects.bulk_create([
        Translation(
            original_story=story,
            assigned_to=translator,
            target_language=pair['language'],
            status=TranslationStatus.PENDING,
        )
        for pair, translator in zip(pairs, translators)
    ])
    story.status = StoryStatus.PENDING_TRANSLATION
    ctx.audit_details['languages'] = languages
    ctx.audit_details['translation_ids'] = [str(t.pk) for t in created]


def _mark_as_translated(ctx: TransitionContext):
    # Allowed when nothing was sent for translation, or once every translation is done
    outstanding = cascades.outstanding_translation_languages(ctx.story)
    if outstanding:
        raise PreconditionFailedError(
            f"Translations still outstanding for: {', '.join(outstanding)}",
            details={'outstanding_languages': outstanding},
        )


def _publish_story(ctx: TransitionContext):
    story = ctx.story
    story.published_at = ctx.now
    story.published_by_id = ctx.actor.user_id
    story.translation_checklist = ctx.data.get('checklist_data') or {}


def _request_revision(ctx: TransitionContext):
    story = ctx.story
    reason = (ctx.data.get('reason') or '').strip()
    min_length = getattr(settings, 'NEWSROOM_MIN_REVISION_REASON_LENGTH', 10)
    if len(reason) < min_length:
        raise PreconditionFailedError(
            f"Revision reason must be at least {min_length} characters",
            details={'missing': 'reason'},
        )

    assignee_id = ctx.data.get('assigned_user_id')
    assignee = _get_user(assignee_id, "") if assignee_id else story.author
    revision = RevisionRequest.objects.create(
        story=story,
        requested_by_id=ctx.actor.user_id,
        requested_by_role=ctx.actor.role,
        assigned_to=assignee,
        reason=reason,
    )
    story.assigned_reviewer = None
    story.assigned_approver = None
    ctx.audit_details.update({
        'revision_request_id': str(revision.pk),
        'assigned_to_id': str(assignee.pk),
        'reason': reason,
    })


def _resume_revision(ctx: TransitionContext):
    resolved = RevisionRequest.objects.filter(
        story=ctx.story, resolved_at__isnull=True
    ).update(resolved_at=ctx.now)
    ctx.audit_details['resolved_revision_requests'] = resolved


STORY_HANDLERS = {
    StoryAction.SUBMIT_FOR_REVIEW: _submit_for_review,
    StoryAction.SEND_FOR_APPROVAL: _send_for_approval,
    StoryAction.APPROVE_STORY: _approve_story,
    StoryAction.SEND_FOR_TRANSLATION: _send_for_translation,
    StoryAction.MARK_AS_TRANSLATED: _mark_as_translated,
    StoryAction.PUBLISH_STORY: _publish_story,
    StoryAction.REQUEST_REVISION: _request_revision,
    StoryAction.RESUME_REVISION: _resume_revision,
}


# =============================================================================
# Story transitions
# =============================================================================

def apply_transition(story_id, action, actor, payload=None, request_meta=None) -> Story:
    """
    Validate and apply a workflow action on a story.

    Args:
        story_id: Story primary key
        action: StoryAction or its string value
        actor: Actor performing the action (None when unauthenticated)
        payload: Action payload: assigned_user_id, checklist_data,
            translation_languages, reason
        request_meta: RequestMetadata for the audit trail

    Returns:
        The updated Story, with author, assignees and category loaded

    Raises:
        NewsroomException subclass describing the first failed check
    """
    with _tracked(_action_label(action, StoryAction)):
        _require_actor(actor)
        data = _validate_payload(
            StageTransitionSerializer,
            {**(payload or {}), 'action': getattr(action, 'value', action)},
        )
        action = StoryAction(data['action'])
        check_role(action, actor.role)

        story = _run_atomic(_apply_transition, story_id, action, actor, data, request_meta)
        return _load_story_for_response(story.pk)


def _apply_transition(story_id, action, actor, data, request_meta) -> Story:
    story = _lock_story(story_id)

    open_revision = (
        action == StoryAction.RESUME_REVISION and _has_open_revision(story, actor.user_id)
    )
    check_ownership(action, actor, story, open_revision)

    target_stage = resolve_target_stage(action, story.stage, story.author_role, story.is_translation)
    ctx = TransitionContext(
        story=story,
        actor=actor,
        action=action,
        data=data,
        previous_stage=story.stage,
        target_stage=target_stage,
        request_meta=request_meta,
    )

    STORY_HANDLERS[action](ctx)

    if target_stage != story.stage:
        story.set_stage(target_stage)
    story.save()

    record_audit(
        actor.user_id,
        action.audit_name,
        'story',
        story.pk,
        previous_state=ctx.previous_stage,
        new_state=target_stage,
        details={'story_title': story.title, **ctx.audit_details},
        request_meta=request_meta,
    )
    logger.info(f"Story {story.pk}: {action.value} {ctx.previous_stage} -> {target_stage} by {actor.user_id}")

    # Cascades run after the primary write, inside the same transaction
    if action == StoryAction.PUBLISH_STORY and not story.is_translation:
        cascades.on_publish(story, actor, request_meta=request_meta, now=ctx.now)
    elif action == StoryAction.APPROVE_STORY and story.is_translation and story.original_story_id:
        cascades.on_translation_approved(
            story.original_story_id, 'story', story.pk, actor, request_meta=request_meta
        )

    return story


# =============================================================================
# Translation request transitions
# =============================================================================

def _language_classification(language) -> Classification:
    label = Language(language).label
    classification = Classification.objects.filter(
        type=ClassificationType.LANGUAGE, name__iexact=label
    ).first()
    if classification is None:
        classification = Classification.objects.create(
            name=label,
            slug=f"language-{label.lower()}",
            type=ClassificationType.LANGUAGE,
        )
    return classification


def create_translation_story(original: Story, translation: Translation) -> Story:
    """
    Create the Story row a translation request is fulfilled by.

    The new story starts as an empty DRAFT authored by the translator, in
    the target language, with the original's category and tags. LANGUAGE
    classifications are replaced by the target language's.
    """
    if original.is_translation:
        raise PreconditionFailedError("Cannot translate a translation story")

    translator = translation.assigned_to
    story = Story(
        title=original.title,
        content='',
        author=translator,
        author_role=get_staff_role(translator) or StaffRole.INTERN,
        category_id=original.category_id,
        is_translation=True,
        original_story=original,
        language=translation.target_language,
    )
    story.set_stage(StoryStage.DRAFT)
    story.slug = Story.build_unique_slug(original.title, translation.target_language)
    story.clean()
    story.save()

    story.tags.set(original.tags.all())
    kept = [c for c in original.classifications.all() if c.type != ClassificationType.LANGUAGE]
    story.classifications.set(kept + [_language_classification(translation.target_language)])
    return story


def apply_translation_transition(translation_id, action, actor, payload=None, request_meta=None) -> Translation:
    """
    Validate and apply an action on a translation request.

    Approval re-checks the original story, which advances to TRANSLATED
    once every translation is done.

    Args:
        translation_id: Translation primary key
        action: TranslationAction or its string value
        actor: Actor performing the action
        payload: Optional ``notes`` and ``reason`` (required for rejection)
        request_meta: RequestMetadata for the audit trail

    Returns:
        The updated Translation
    """
    with _tracked(_action_label(action, TranslationAction)):
        _require_actor(actor)
        data = _validate_payload(
            TranslationTransitionSerializer,
            {**(payload or {}), 'action': getattr(action, 'value', action)},
        )
        action = TranslationAction(data['action'])
        check_role(action, actor.role)

        translation = _run_atomic(_apply_translation_transition, translation_id, action, actor, data, request_meta)
        return (
            Translation.objects
            .select_related('assigned_to', 'reviewer', 'translated_story')
            .get(pk=translation.pk)
        )


def _apply_translation_transition(translation_id, action, actor, data, request_meta) -> Translation:
    try:
        snapshot = Translation.objects.filter(pk=translation_id).values('original_story_id').first()
    except (ValueError, DjangoValidationError):
        snapshot = None
    if snapshot is None:
        raise NotFoundError(f"Translation {translation_id} not found")

    original = Story.objects.select_for_update().get(pk=snapshot['original_story_id'])
    translation = Translation.objects.select_for_update().get(pk=translation_id)

    if action in (
        TranslationAction.START_TRANSLATION,
        TranslationAction.SUBMIT_TRANSLATION,
        TranslationAction.RESUME_TRANSLATION,
    ) and not can_work_on_translation(actor.role, actor.user_id, translation):
        raise PermissionDeniedError(
            "Only the assigned translator can work on this translation",
            details={'action': action.value},
        )

    previous_status = translation.status
    target_status = resolve_translation_status(action, previous_status)
    now = timezone.now()
    notes = (data.get('notes') or '').strip()
    details = {
        'original_story_id': str(original.pk),
        'target_language': translation.target_language,
    }

    if action == TranslationAction.START_TRANSLATION:
        translation.started_at = now
        if translation.translated_story_id is None:
            translation.translated_story = create_translation_story(original, translation)
        details['translated_story_id'] = str(translation.translated_story_id)

    elif action == TranslationAction.SUBMIT_TRANSLATION:
        translation.completed_at = now
        if notes:
            translation.translator_notes = notes

    elif action == TranslationAction.APPROVE_TRANSLATION:
        translation.reviewer_id = actor.user_id
        translation.reviewed_at = now
        translation.approved_at = now
        if notes:
            translation.reviewer_notes = notes

    elif action == TranslationAction.REJECT_TRANSLATION:
        reason = (data.get('reason') or '').strip()
        if not reason:
            raise PreconditionFailedError(
                "A reason is required to reject a translation",
                details={'missing': 'reason'},
            )
        translation.reviewer_id = actor.user_id
        translation.reviewed_at = now
        translation.rejected_at = now
        translation.rejection_reason = reason
        details['reason'] = reason

    translation.status = target_status
    translation.save()

    record_audit(
        actor.user_id,
        action.audit_name,
        'translation',
        translation.pk,
        previous_state=previous_status,
        new_state=target_status,
        details=details,
        request_meta=request_meta,
    )
    logger.info(f"Translation {translation.pk}: {action.value} {previous_status} -> {target_status}")

    if action == TranslationAction.APPROVE_TRANSLATION:
        cascades.on_translation_approved(
            original.pk, 'translation', translation.pk, actor, request_meta=request_meta
        )

    return translation


# =============================================================================
# Reassignment
# =============================================================================

def reassign(story_id, kind, assignee_id, actor, request_meta=None) -> Story:
    """
    Replace the assigned reviewer or approver of a story in review.

    Sub-editors and above may reassign either. The story must be waiting
    on that assignee, and the new assignee must hold the role the stage
    needs.
    """
    with _tracked(f"reassign_{kind}" if kind in REASSIGN_RULES else 'unknown'):
        _require_actor(actor)
        data = _validate_payload(ReassignSerializer, {'type': kind, 'assigned_to_id': assignee_id})
        required_stage, minimum_role, assignee_role, story_field = REASSIGN_RULES[data['type']]

        if ROLE_LEVELS.get(actor.role, 0) < ROLE_LEVELS[minimum_role]:
            raise PermissionDeniedError(
                f"Role {actor.role or 'none'} may not reassign the {data['type']}",
                details={'action': f"reassign_{data['type']}", 'role': actor.role},
            )

        story = _run_atomic(
            _reassign, story_id, data, required_stage, assignee_role, story_field, actor, request_meta
        )
        return _load_story_for_response(story.pk)


def _reassign(story_id, data, required_stage, assignee_role, story_field, actor, request_meta) -> Story:
    kind = data['type']
    story = _lock_story(story_id)

    if story.stage != required_stage:
        raise InvalidTransitionError(
            f"Cannot reassign {kind} from {story.stage} stage",
            details={'current_stage': story.stage},
        )

    assignee = _get_user(data['assigned_to_id'], f"Must specify the new {kind}")
    if ROLE_LEVELS.get(get_staff_role(assignee), 0) < ROLE_LEVELS[assignee_role]:
        raise PreconditionFailedError(
            f"New {kind} must be a {assignee_role.label} or above",
            details={'assigned_to_id': str(assignee.pk)},
        )

    previous_id = getattr(story, f"{story_field}_id")
    setattr(story, story_field, assignee)
    story.save(update_fields=[story_field, 'updated_at'])

    record_audit(
        actor.user_id,
        f"REASSIGN_{kind.upper()}",
        'story',
        story.pk,
        previous_state=story.stage,
        new_state=story.stage,
        details={
            'story_title': story.title,
            'previous_assignee_id': str(previous_id) if previous_id else None,
            'new_assignee_id': str(assignee.pk),
        },
        request_meta=request_meta,
    )
    return story


# =============================================================================
# Queries
# =============================================================================

def available_actions(story: Story, actor: Optional[Actor]) -> List[str]:
    """Actions whose role gate, ownership rules and stage precondition pass now."""
    if actor is None or actor.role is None:
        return []

    actions = []
    for action in StoryAction:
        if not is_role_allowed(action, actor.role):
            continue
        open_revision = (
            action == StoryAction.RESUME_REVISION
            and not can_override_assignment(actor.role)
            and _has_open_revision(story, actor.user_id)
        )
        if ownership_violation(action, actor, story, open_revision):
            continue
        try:
            resolve_target_stage(action, story.stage, story.author_role, story.is_translation)
        except InvalidTransitionError:
            continue
        actions.append(action.value)
    return actions
