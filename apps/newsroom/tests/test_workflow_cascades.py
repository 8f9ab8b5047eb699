"""
Tests for workflow cascades.

Publishing an original publishes its translations; approving the last
outstanding translation advances the original to TRANSLATED exactly once.
"""

from concurrent.futures import ThreadPoolExecutor
from unittest.mock import patch

import pytest
from django.db import OperationalError

from apps.core.exceptions import TransientStoreError
from apps.core.models import AuditLog
from apps.newsroom import cascades
from apps.newsroom.models import Story, Translation
from apps.newsroom.state_machine import Language, StoryAction, StoryStage, TranslationStatus
from apps.newsroom.workflow import apply_transition


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def original(make_story, journalist):
    return make_story(journalist, stage=StoryStage.APPROVED)


@pytest.fixture
def make_translation_story(make_story, journalist, original):
    def _make(language, stage=StoryStage.NEEDS_SUB_EDITOR_APPROVAL, source=None):
        return make_story(
            journalist,
            stage=stage,
            is_translation=True,
            original_story=source or original,
            language=language,
        )
    return _make


# ============================================================================
# Publish cascade
# ============================================================================

class TestPublishCascade:
    """Publishing an original story publishes every translation with it."""

    @pytest.mark.django_db
    def test_publishes_all_translation_stories(self, original, make_translation_story, editor, as_actor):
        original.set_stage(StoryStage.TRANSLATED)
        original.save()
        xhosa = make_translation_story(Language.XHOSA, stage=StoryStage.TRANSLATED)
        zulu = make_translation_story(Language.ZULU, stage=StoryStage.TRANSLATED)

        story = apply_transition(original.pk, StoryAction.PUBLISH_STORY, as_actor(editor))

        assert story.stage == StoryStage.PUBLISHED
        assert story.published_by == editor
        for translated in (xhosa, zulu):
            translated.refresh_from_db()
            assert translated.stage == StoryStage.PUBLISHED
            assert translated.published_at == story.published_at

        assert AuditLog.objects.filter(action='PUBLISH_STORY', target_id=str(original.pk)).count() == 1
        auto = AuditLog.objects.filter(action='AUTO_PUBLISH_TRANSLATION')
        assert sorted(a.target_id for a in auto) == sorted([str(xhosa.pk), str(zulu.pk)])
        for entry in auto:
            assert entry.previous_state == StoryStage.TRANSLATED
            assert entry.new_state == StoryStage.PUBLISHED
            assert entry.details['trigger'] == 'Original story published'
            assert entry.details['original_story_id'] == str(original.pk)

    @pytest.mark.django_db
    def test_unfinished_translation_is_published_too(self, original, make_translation_story, editor, as_actor):
        original.set_stage(StoryStage.TRANSLATED)
        original.save()
        draft = make_translation_story(Language.AFRIKAANS, stage=StoryStage.DRAFT)

        apply_transition(original.pk, StoryAction.PUBLISH_STORY, as_actor(editor))

        draft.refresh_from_db()
        assert draft.stage == StoryStage.PUBLISHED

    @pytest.mark.django_db
    def test_already_published_translation_untouched(self, original, make_translation_story, editor, as_actor):
        original.set_stage(StoryStage.TRANSLATED)
        original.save()
        make_translation_story(Language.XHOSA, stage=StoryStage.PUBLISHED)

        apply_transition(original.pk, StoryAction.PUBLISH_STORY, as_actor(editor))

        assert not AuditLog.objects.filter(action='AUTO_PUBLISH_TRANSLATION').exists()

    @pytest.mark.django_db
    def test_approved_requests_become_published(self, original, journalist, editor, as_actor):
        original.set_stage(StoryStage.TRANSLATED)
        original.save()
        approved = Translation.objects.create(
            original_story=original, assigned_to=journalist,
            target_language=Language.ZULU, status=TranslationStatus.APPROVED,
        )
        pending = Translation.objects.create(
            original_story=original, assigned_to=journalist, target_language=Language.XHOSA,
        )

        apply_transition(original.pk, StoryAction.PUBLISH_STORY, as_actor(editor))

        approved.refresh_from_db()
        pending.refresh_from_db()
        assert approved.status == TranslationStatus.PUBLISHED
        assert approved.published_at is not None
        assert pending.status == TranslationStatus.PENDING
        entry = AuditLog.objects.get(action='AUTO_PUBLISH_TRANSLATION_REQUEST')
        assert entry.target_type == 'translation'
        assert entry.target_id == str(approved.pk)

    @pytest.mark.django_db
    def test_publishing_a_translation_story_does_not_cascade(
        self, original, make_translation_story, editor, as_actor
    ):
        translated = make_translation_story(Language.XHOSA, stage=StoryStage.TRANSLATED)
        sibling = make_translation_story(Language.ZULU, stage=StoryStage.TRANSLATED)

        apply_transition(translated.pk, StoryAction.PUBLISH_STORY, as_actor(editor))

        sibling.refresh_from_db()
        original.refresh_from_db()
        assert sibling.stage == StoryStage.TRANSLATED
        assert original.stage == StoryStage.APPROVED

    @pytest.mark.django_db
    def test_cascade_failure_rolls_back_primary(self, original, make_translation_story, editor, as_actor):
        original.set_stage(StoryStage.TRANSLATED)
        original.save()
        translated = make_translation_story(Language.XHOSA, stage=StoryStage.TRANSLATED)

        with patch('apps.newsroom.cascades.record_audit', side_effect=OperationalError('disk I/O error')):
            with pytest.raises(TransientStoreError):
                apply_transition(original.pk, StoryAction.PUBLISH_STORY, as_actor(editor))

        original.refresh_from_db()
        translated.refresh_from_db()
        assert original.stage == StoryStage.TRANSLATED
        assert original.published_at is None
        assert translated.stage == StoryStage.TRANSLATED
        assert AuditLog.objects.count() == 0


# ============================================================================
# Translation completeness
# ============================================================================

class TestTranslationUnitsComplete:
    """Deciding whether every translation of an original is done."""

    @pytest.mark.django_db
    def test_no_units_is_never_complete(self, original):
        assert cascades.translation_units_complete(original) is False

    @pytest.mark.django_db
    def test_unlinked_translation_stories(self, original, make_translation_story):
        make_translation_story(Language.XHOSA, stage=StoryStage.TRANSLATED)
        assert cascades.translation_units_complete(original) is True

        make_translation_story(Language.ZULU, stage=StoryStage.DRAFT)
        assert cascades.translation_units_complete(original) is False

    @pytest.mark.django_db
    def test_request_complete_by_status(self, original, journalist):
        Translation.objects.create(
            original_story=original, assigned_to=journalist,
            target_language=Language.XHOSA, status=TranslationStatus.APPROVED,
        )
        assert cascades.translation_units_complete(original) is True

    @pytest.mark.django_db
    def test_request_complete_by_linked_story(self, original, journalist, make_translation_story):
        linked = make_translation_story(Language.XHOSA, stage=StoryStage.TRANSLATED)
        Translation.objects.create(
            original_story=original, assigned_to=journalist, translated_story=linked,
            target_language=Language.XHOSA, status=TranslationStatus.IN_PROGRESS,
        )
        assert cascades.translation_units_complete(original) is True

    @pytest.mark.django_db
    def test_pending_request_blocks(self, original, journalist, make_translation_story):
        make_translation_story(Language.XHOSA, stage=StoryStage.TRANSLATED)
        Translation.objects.create(
            original_story=original, assigned_to=journalist, target_language=Language.ZULU,
        )
        assert cascades.translation_units_complete(original) is False


# ============================================================================
# Auto-advance
# ============================================================================

class TestAutoMarkAsTranslated:
    """Approving the last outstanding translation advances the original."""

    @pytest.mark.django_db
    def test_waits_for_every_sibling(self, original, make_translation_story, sub_editor, as_actor):
        xhosa = make_translation_story(Language.XHOSA)
        zulu = make_translation_story(Language.ZULU)

        apply_transition(xhosa.pk, StoryAction.APPROVE_STORY, as_actor(sub_editor))
        original.refresh_from_db()
        assert original.stage == StoryStage.APPROVED

        apply_transition(zulu.pk, StoryAction.APPROVE_STORY, as_actor(sub_editor))
        original.refresh_from_db()
        assert original.stage == StoryStage.TRANSLATED

        entry = AuditLog.objects.get(action='AUTO_MARK_AS_TRANSLATED')
        assert entry.target_id == str(original.pk)
        assert entry.previous_state == StoryStage.APPROVED
        assert entry.new_state == StoryStage.TRANSLATED
        assert entry.details['trigger_story_id'] == str(zulu.pk)
        assert entry.actor_id == sub_editor.pk

    @pytest.mark.django_db
    def test_second_recheck_is_a_no_op(self, original, make_translation_story, sub_editor, as_actor):
        """Of two racing approvals, only the first advances the original."""
        xhosa = make_translation_story(Language.XHOSA, stage=StoryStage.TRANSLATED)
        zulu = make_translation_story(Language.ZULU, stage=StoryStage.TRANSLATED)
        actor = as_actor(sub_editor)

        assert cascades.on_translation_approved(original.pk, 'story', xhosa.pk, actor) is True
        assert cascades.on_translation_approved(original.pk, 'story', zulu.pk, actor) is False

        assert AuditLog.objects.filter(action='AUTO_MARK_AS_TRANSLATED').count() == 1
        assert Story.objects.get(pk=original.pk).stage == StoryStage.TRANSLATED

    @pytest.mark.django_db
    def test_original_not_approved_is_left_alone(self, make_story, journalist, sub_editor, as_actor):
        source = make_story(journalist, stage=StoryStage.NEEDS_SUB_EDITOR_APPROVAL)
        make_story(
            journalist, stage=StoryStage.TRANSLATED, is_translation=True,
            original_story=source, language=Language.ZULU,
        )

        assert cascades.on_translation_approved(source.pk, 'story', None, as_actor(sub_editor)) is False
        source.refresh_from_db()
        assert source.stage == StoryStage.NEEDS_SUB_EDITOR_APPROVAL

    @pytest.mark.django_db
    def test_trigger_key_for_translation_requests(self, original, journalist, sub_editor, as_actor):
        request = Translation.objects.create(
            original_story=original, assigned_to=journalist,
            target_language=Language.XHOSA, status=TranslationStatus.APPROVED,
        )

        assert cascades.on_translation_approved(original.pk, 'translation', request.pk, as_actor(sub_editor))

        entry = AuditLog.objects.get(action='AUTO_MARK_AS_TRANSLATED')
        assert entry.details['trigger_translation_id'] == str(request.pk)
        assert 'trigger_story_id' not in entry.details


class TestConcurrentSiblingApprovals:
    """Approving the last two translations of a story at the same time."""

    @pytest.mark.django_db(transaction=True)
    def test_original_advances_exactly_once(self, original, make_translation_story, sub_editor, as_actor):
        """
        Both sibling approvals run in parallel threads. Whatever the
        interleaving, the original is advanced once and only once.

        Note: SQLite has no row locks, so a thread that hits lock contention
        fails with a database error. Stories still awaiting approval
        afterwards are retried, as a client would. On PostgreSQL the
        select_for_update on the original serialises the two re-checks.
        """
        xhosa = make_translation_story(Language.XHOSA)
        zulu = make_translation_story(Language.ZULU)
        actor = as_actor(sub_editor)

        errors = []

        def approve(story_id):
            try:
                apply_transition(story_id, StoryAction.APPROVE_STORY, actor)
            except (TransientStoreError, OperationalError) as e:
                errors.append(e)

        with ThreadPoolExecutor(max_workers=2) as executor:
            futures = [executor.submit(approve, story.pk) for story in (xhosa, zulu)]
            for f in futures:
                f.result(timeout=10)

        assert AuditLog.objects.filter(action='AUTO_MARK_AS_TRANSLATED').count() <= 1

        # Retry whatever lost to lock contention
        for story in (xhosa, zulu):
            story.refresh_from_db()
            if story.stage == StoryStage.NEEDS_SUB_EDITOR_APPROVAL:
                apply_transition(story.pk, StoryAction.APPROVE_STORY, actor)

        original.refresh_from_db()
        assert original.stage == StoryStage.TRANSLATED
        auto = AuditLog.objects.filter(action='AUTO_MARK_AS_TRANSLATED')
        assert auto.count() == 1, f"Errors during parallel approval: {errors}"
        assert auto.get().target_id == str(original.pk)
        assert AuditLog.objects.filter(action='APPROVE_STORY').count() == 2
        for story in (xhosa, zulu):
            story.refresh_from_db()
            assert story.stage == StoryStage.TRANSLATED
