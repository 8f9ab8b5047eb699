"""
Workflow cascades.

Secondary state changes triggered by a primary transition. Every function
here expects to run inside the caller's ``transaction.atomic()`` block and
writes one audit record per entity it changes.

- on_publish: publishing an original publishes its translation stories and
  marks approved translation requests as published.
- on_translation_approved: approving a translation (story or request)
  re-checks the original and advances it APPROVED -> TRANSLATED once every
  translation unit is complete.
"""

import logging
from functools import partial
from typing import List

from django.db import transaction
from django.utils import timezone

from apps.core.audit import record_audit
from apps.core.metrics import increment_cascade
from apps.newsroom.models import Story, Translation
from apps.newsroom.state_machine import (
    COMPLETE_STAGES,
    COMPLETE_TRANSLATION_STATUSES,
    StoryStage,
    TranslationStatus,
    check_transition,
    check_translation_transition,
)

logger = logging.getLogger(__name__)


def on_publish(original, actor, request_meta=None, now=None) -> List[str]:
    """
    Publish every unpublished translation story of ``original``.

    Translation stories are locked after the original, which the caller
    already holds.

    Returns:
        IDs of the translation stories that were published
    """
    now = now or timezone.now()
    published = []

    translation_stories = (
        Story.objects.select_for_update()
        .filter(original_story=original, is_translation=True)
        .exclude(stage=StoryStage.PUBLISHED)
        .order_by('id')
    )
    for story in translation_stories:
        previous_stage = story.stage
        check_transition(previous_stage, StoryStage.PUBLISHED, cascade=True)

        story.set_stage(StoryStage.PUBLISHED)
        story.published_at = now
        story.save(update_fields=['stage', 'status', 'published_at', 'updated_at'])

        record_audit(
            actor.user_id,
            'AUTO_PUBLISH_TRANSLATION',
            'story',
            story.pk,
            previous_state=previous_stage,
            new_state=StoryStage.PUBLISHED,
            details={
                'story_title': story.title,
                'trigger': 'Original story published',
                'original_story_id': str(original.pk),
            },
            request_meta=request_meta,
        )
        published.append(str(story.pk))

    approved_requests = (
        Translation.objects.select_for_update()
        .filter(original_story=original, status=TranslationStatus.APPROVED)
        .order_by('id')
    )
    request_count = 0
    for translation in approved_requests:
        check_translation_transition(translation.status, TranslationStatus.PUBLISHED)
        translation.status = TranslationStatus.PUBLISHED
        translation.published_at = now
        translation.save(update_fields=['status', 'published_at', 'updated_at'])

        record_audit(
            actor.user_id,
            'AUTO_PUBLISH_TRANSLATION_REQUEST',
            'translation',
            translation.pk,
            previous_state=TranslationStatus.APPROVED,
            new_state=TranslationStatus.PUBLISHED,
            details={
                'trigger': 'Original story published',
                'original_story_id': str(original.pk),
                'target_language': translation.target_language,
            },
            request_meta=request_meta,
        )
        request_count += 1

    # Counted only once the transaction commits
    transaction.on_commit(partial(increment_cascade, 'auto_publish_translation', len(published)))
    transaction.on_commit(partial(increment_cascade, 'auto_publish_translation_request', request_count))

    if published or request_count:
        logger.info(
            f"Published {len(published)} translation stories and "
            f"{request_count} translation requests with story {original.pk}"
        )
    return published


def _translation_units(original):
    """
    Yield ``(language, complete)`` for every translation unit of ``original``.

    Each translation request is a unit, complete once it is approved or
    published, or once its linked translation story has reached an approved
    stage. Translation stories not linked to any request are units of their
    own, complete at an approved stage.
    """
    linked_story_ids = set()

    requests = Translation.objects.filter(original_story=original).select_related('translated_story')
    for translation in requests:
        story = translation.translated_story
        if story is not None:
            linked_story_ids.add(story.pk)
        story_done = story is not None and story.stage in COMPLETE_STAGES
        yield translation.target_language, translation.status in COMPLETE_TRANSLATION_STATUSES or story_done

    unlinked = (
        Story.objects.filter(original_story=original, is_translation=True)
        .exclude(pk__in=linked_story_ids)
        .values_list('language', 'stage')
    )
    for language, stage in unlinked:
        yield language, stage in COMPLETE_STAGES


def outstanding_translation_languages(original) -> List[str]:
    """Target languages of the translation units not yet complete."""
    return sorted({language for language, complete in _translation_units(original) if not complete})


def translation_units_complete(original) -> bool:
    """Whether ``original`` has translation units and every one is complete."""
    units = list(_translation_units(original))
    return bool(units) and all(complete for _, complete in units)


def on_translation_approved(original_story_id, trigger_type, trigger_id, actor, request_meta=None) -> bool:
    """
    Advance the original story to TRANSLATED if all its translations are done.

    The original is locked and re-read here so that, of two racing sibling
    approvals, only the first to commit sees APPROVED; the other observes
    TRANSLATED and does nothing.

    Args:
        original_story_id: The story being translated
        trigger_type: "story" or "translation", the entity whose approval fired this
        trigger_id: ID of that entity
        actor: Actor performing the primary transition

    Returns:
        True if the original was advanced
    """
    original = Story.objects.select_for_update().get(pk=original_story_id)

    if original.stage != StoryStage.APPROVED:
        logger.debug(f"Original {original.pk} is {original.stage}; no auto-advance")
        return False

    if not translation_units_complete(original):
        logger.debug(f"Original {original.pk} still has outstanding translations")
        return False

    check_transition(original.stage, StoryStage.TRANSLATED, cascade=True)
    original.set_stage(StoryStage.TRANSLATED)
    original.save(update_fields=['stage', 'status', 'updated_at'])

    trigger_key = 'trigger_story_id' if trigger_type == 'story' else 'trigger_translation_id'
    record_audit(
        actor.user_id,
        'AUTO_MARK_AS_TRANSLATED',
        'story',
        original.pk,
        previous_state=StoryStage.APPROVED,
        new_state=StoryStage.TRANSLATED,
        details={
            'story_title': original.title,
            'trigger': 'All translations approved',
            trigger_key: str(trigger_id),
        },
        request_meta=request_meta,
    )
    transaction.on_commit(partial(increment_cascade, 'auto_mark_as_translated'))
    logger.info(f"Original story {original.pk} auto-advanced to TRANSLATED by {trigger_type} {trigger_id}")
    return True
