"""
Tests for translation request transitions.

A translation request moves PENDING -> IN_PROGRESS -> NEEDS_REVIEW ->
APPROVED, with a REJECTED detour back to IN_PROGRESS. Starting work
creates the translation story; approval re-checks the original.
"""

import pytest

from apps.core.exceptions import (
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    PreconditionFailedError,
)
from apps.core.models import AuditLog
from apps.core.permissions import StaffRole
from apps.newsroom.models import Classification, Translation
from apps.newsroom.state_machine import (
    ClassificationType,
    Language,
    StoryStage,
    TranslationAction,
    TranslationStatus,
)
from apps.newsroom.workflow import apply_translation_transition, create_translation_story


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def translator(make_user):
    return make_user(StaffRole.JOURNALIST, 'translator')


@pytest.fixture
def original(make_story, journalist, tag):
    story = make_story(journalist, stage=StoryStage.APPROVED)
    story.tags.set([tag])
    return story


@pytest.fixture
def request_xhosa(original, translator):
    return Translation.objects.create(
        original_story=original, assigned_to=translator, target_language=Language.XHOSA,
    )


def advance(translation, actor, *actions, **payload):
    for action in actions:
        translation = apply_translation_transition(translation.pk, action, actor, payload)
    return translation


# ============================================================================
# Lifecycle
# ============================================================================

class TestTranslationLifecycle:
    """Moving a request through its statuses."""

    @pytest.mark.django_db
    def test_start_creates_translation_story(self, request_xhosa, original, translator, tag, christian, as_actor):
        translation = apply_translation_transition(
            request_xhosa.pk, TranslationAction.START_TRANSLATION, as_actor(translator)
        )

        assert translation.status == TranslationStatus.IN_PROGRESS
        assert translation.started_at is not None
        story = translation.translated_story
        assert story.is_translation
        assert story.original_story_id == original.pk
        assert story.stage == StoryStage.DRAFT
        assert story.author == translator
        assert story.author_role == StaffRole.JOURNALIST
        assert story.language == Language.XHOSA
        assert story.category_id == original.category_id
        assert story.slug.endswith('-xhosa')
        assert list(story.tags.all()) == [tag]

        classifications = {(c.type, c.name) for c in story.classifications.all()}
        assert classifications == {
            (ClassificationType.RELIGION, christian.name),
            (ClassificationType.LANGUAGE, 'Xhosa'),
        }

        entry = AuditLog.objects.get(target_id=str(translation.pk))
        assert entry.action == 'START_TRANSLATION'
        assert entry.target_type == 'translation'
        assert entry.details['translated_story_id'] == str(story.pk)

    @pytest.mark.django_db
    def test_existing_language_classification_is_reused(self, request_xhosa, translator, as_actor):
        xhosa = Classification.objects.create(
            name='Xhosa', slug='xhosa', type=ClassificationType.LANGUAGE
        )

        translation = apply_translation_transition(
            request_xhosa.pk, TranslationAction.START_TRANSLATION, as_actor(translator)
        )

        assert xhosa in translation.translated_story.classifications.all()
        assert Classification.objects.filter(type=ClassificationType.LANGUAGE, name='Xhosa').count() == 1

    @pytest.mark.django_db
    def test_submit_records_notes(self, request_xhosa, translator, as_actor):
        translation = advance(
            request_xhosa, as_actor(translator),
            TranslationAction.START_TRANSLATION, TranslationAction.SUBMIT_TRANSLATION,
            notes='Kept the place names in English.',
        )

        assert translation.status == TranslationStatus.NEEDS_REVIEW
        assert translation.completed_at is not None
        assert translation.translator_notes == 'Kept the place names in English.'

    @pytest.mark.django_db
    def test_approval_advances_original(self, request_xhosa, original, translator, sub_editor, as_actor):
        advance(
            request_xhosa, as_actor(translator),
            TranslationAction.START_TRANSLATION, TranslationAction.SUBMIT_TRANSLATION,
        )

        translation = apply_translation_transition(
            request_xhosa.pk, TranslationAction.APPROVE_TRANSLATION, as_actor(sub_editor), {'notes': 'Good work.'}
        )

        assert translation.status == TranslationStatus.APPROVED
        assert translation.reviewer == sub_editor
        assert translation.reviewer_notes == 'Good work.'
        original.refresh_from_db()
        assert original.stage == StoryStage.TRANSLATED
        entry = AuditLog.objects.get(action='AUTO_MARK_AS_TRANSLATED')
        assert entry.details['trigger_translation_id'] == str(translation.pk)

    @pytest.mark.django_db
    def test_approval_waits_for_sibling_requests(
        self, request_xhosa, original, translator, sub_editor, make_user, as_actor
    ):
        Translation.objects.create(
            original_story=original, assigned_to=make_user(StaffRole.JOURNALIST), target_language=Language.ZULU,
        )
        advance(
            request_xhosa, as_actor(translator),
            TranslationAction.START_TRANSLATION, TranslationAction.SUBMIT_TRANSLATION,
        )

        apply_translation_transition(request_xhosa.pk, TranslationAction.APPROVE_TRANSLATION, as_actor(sub_editor))

        original.refresh_from_db()
        assert original.stage == StoryStage.APPROVED
        assert not AuditLog.objects.filter(action='AUTO_MARK_AS_TRANSLATED').exists()

    @pytest.mark.django_db
    def test_reject_and_resume(self, request_xhosa, translator, sub_editor, as_actor):
        advance(
            request_xhosa, as_actor(translator),
            TranslationAction.START_TRANSLATION, TranslationAction.SUBMIT_TRANSLATION,
        )

        rejected = apply_translation_transition(
            request_xhosa.pk,
            TranslationAction.REJECT_TRANSLATION,
            as_actor(sub_editor),
            {'reason': 'Second paragraph is missing.'},
        )
        assert rejected.status == TranslationStatus.REJECTED
        assert rejected.rejection_reason == 'Second paragraph is missing.'
        assert rejected.rejected_at is not None

        resumed = apply_translation_transition(
            request_xhosa.pk, TranslationAction.RESUME_TRANSLATION, as_actor(translator)
        )
        assert resumed.status == TranslationStatus.IN_PROGRESS
        # The translation story survives the detour
        assert resumed.translated_story_id == rejected.translated_story_id

    @pytest.mark.django_db
    def test_reject_requires_reason(self, request_xhosa, translator, sub_editor, as_actor):
        advance(
            request_xhosa, as_actor(translator),
            TranslationAction.START_TRANSLATION, TranslationAction.SUBMIT_TRANSLATION,
        )

        with pytest.raises(PreconditionFailedError, match="reason is required"):
            apply_translation_transition(
                request_xhosa.pk, TranslationAction.REJECT_TRANSLATION, as_actor(sub_editor), {'reason': '  '}
            )

        request_xhosa.refresh_from_db()
        assert request_xhosa.status == TranslationStatus.NEEDS_REVIEW


class TestTranslationGates:
    """Role, assignment and status checks."""

    @pytest.mark.django_db
    def test_other_journalist_cannot_start(self, request_xhosa, make_user, as_actor):
        with pytest.raises(PermissionDeniedError, match="Only the assigned translator"):
            apply_translation_transition(
                request_xhosa.pk, TranslationAction.START_TRANSLATION, as_actor(make_user(StaffRole.JOURNALIST))
            )

    @pytest.mark.django_db
    def test_sub_editor_may_work_on_any_translation(self, request_xhosa, sub_editor, as_actor):
        translation = apply_translation_transition(
            request_xhosa.pk, TranslationAction.START_TRANSLATION, as_actor(sub_editor)
        )
        assert translation.status == TranslationStatus.IN_PROGRESS

    @pytest.mark.django_db
    def test_translator_cannot_approve_own_work(self, request_xhosa, translator, as_actor):
        advance(
            request_xhosa, as_actor(translator),
            TranslationAction.START_TRANSLATION, TranslationAction.SUBMIT_TRANSLATION,
        )

        with pytest.raises(PermissionDeniedError):
            apply_translation_transition(
                request_xhosa.pk, TranslationAction.APPROVE_TRANSLATION, as_actor(translator)
            )

    @pytest.mark.django_db
    def test_cannot_start_twice(self, request_xhosa, translator, as_actor):
        advance(request_xhosa, as_actor(translator), TranslationAction.START_TRANSLATION)

        with pytest.raises(InvalidTransitionError, match="from IN_PROGRESS status"):
            apply_translation_transition(
                request_xhosa.pk, TranslationAction.START_TRANSLATION, as_actor(translator)
            )

    @pytest.mark.django_db
    def test_missing_request(self, translator, as_actor):
        with pytest.raises(NotFoundError):
            apply_translation_transition(
                '00000000-0000-0000-0000-000000000000', TranslationAction.START_TRANSLATION, as_actor(translator)
            )


class TestCreateTranslationStory:
    """Building the story a translation request is fulfilled by."""

    @pytest.mark.django_db
    def test_translator_without_role_snapshot_defaults_to_intern(self, original, request_xhosa, monkeypatch):
        monkeypatch.setattr('apps.newsroom.workflow.get_staff_role', lambda user: None)

        story = create_translation_story(original, request_xhosa)

        assert story.author_role == StaffRole.INTERN

    @pytest.mark.django_db
    def test_translation_of_translation_rejected(self, original, request_xhosa, make_story, journalist):
        translated = make_story(
            journalist, is_translation=True, original_story=original, language=Language.ZULU,
        )

        with pytest.raises(PreconditionFailedError):
            create_translation_story(translated, request_xhosa)

    @pytest.mark.django_db
    def test_translation_story_starts_empty(self, original, request_xhosa):
        original.content = 'Full English text of the story.'
        original.save(update_fields=['content'])

        story = create_translation_story(original, request_xhosa)

        assert story.content == ''
        assert story.title == original.title
        assert story.stage == StoryStage.DRAFT
