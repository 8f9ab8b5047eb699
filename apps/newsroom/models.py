"""
Newsroom models.
Stories, their translations, and the lookups used to gate approval.
"""

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils.text import slugify

from apps.core.models import BaseModel
from apps.core.permissions import StaffRole
from apps.newsroom.state_machine import (
    ClassificationType,
    Language,
    STAGE_TO_STATUS,
    StoryStage,
    StoryStatus,
    TranslationStatus,
)


class Category(BaseModel):
    """Editorial section a story is filed under."""

    name = models.CharField(max_length=100, verbose_name='Name')
    slug = models.SlugField(max_length=120, unique=True, verbose_name='Slug')
    description = models.TextField(blank=True, verbose_name='Description')

    class Meta:
        db_table = 'newsroom_categories'
        ordering = ['name']
        verbose_name = 'Category'
        verbose_name_plural = 'Categories'

    def __str__(self):
        return self.name


class Tag(BaseModel):
    name = models.CharField(max_length=100, verbose_name='Name')
    slug = models.SlugField(max_length=120, unique=True, verbose_name='Slug')

    class Meta:
        db_table = 'newsroom_tags'
        ordering = ['name']

    def __str__(self):
        return self.name


class Classification(BaseModel):
    """
    Typed tag attached to stories.

    At least one LANGUAGE and one RELIGION classification are required
    before a story can be approved.
    """

    name = models.CharField(max_length=100, verbose_name='Name')
    slug = models.SlugField(max_length=120, unique=True, verbose_name='Slug')
    type = models.CharField(
        max_length=20,
        choices=ClassificationType.choices,
        db_index=True,
        verbose_name='Type',
        help_text='Classification type; LANGUAGE and RELIGION gate approval'
    )
    is_active = models.BooleanField(default=True, verbose_name='Active')
    sort_order = models.IntegerField(default=0, verbose_name='Sort Order')

    class Meta:
        db_table = 'newsroom_classifications'
        ordering = ['type', 'sort_order', 'name']
        verbose_name = 'Classification'
        verbose_name_plural = 'Classifications'

    def __str__(self):
        return f"{self.get_type_display()}: {self.name}"


class Story(BaseModel):
    """
    A news story moving through the editorial pipeline.

    Translation stories are Story rows too: ``is_translation`` is set and
    ``original_story`` points at the story they translate.
    """

    # Content
    title = models.CharField(max_length=255, verbose_name='Title')
    slug = models.SlugField(
        max_length=300,
        unique=True,
        verbose_name='Slug',
        help_text='Derived from the title; translations append the language code'
    )
    content = models.TextField(blank=True, verbose_name='Content')

    author = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='authored_stories',
        verbose_name='Author'
    )
    author_role = models.CharField(
        max_length=20,
        choices=StaffRole.choices,
        verbose_name='Author Role',
        help_text="Author's staff role when the story was created"
    )

    category = models.ForeignKey(
        Category,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='stories',
        verbose_name='Category'
    )
    tags = models.ManyToManyField(Tag, blank=True, related_name='stories')
    classifications = models.ManyToManyField(Classification, blank=True, related_name='stories')

    # Workflow
    stage = models.CharField(
        max_length=32,
        choices=StoryStage.choices,
        default=StoryStage.DRAFT,
        db_index=True,
        verbose_name='Stage'
    )
    status = models.CharField(
        max_length=32,
        choices=StoryStatus.choices,
        default=StoryStatus.DRAFT,
        verbose_name='Status',
        help_text='Legacy status, kept in step with the stage'
    )
    assigned_reviewer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='stories_to_review',
        verbose_name='Assigned Reviewer'
    )
    assigned_approver = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='stories_to_approve',
        verbose_name='Assigned Approver'
    )

    # Per-stage checklists: free-form maps of item -> done
    author_checklist = models.JSONField(default=dict, blank=True)
    reviewer_checklist = models.JSONField(default=dict, blank=True)
    approver_checklist = models.JSONField(default=dict, blank=True)
    translation_checklist = models.JSONField(default=dict, blank=True)

    # Translation linkage
    is_translation = models.BooleanField(default=False, db_index=True, verbose_name='Is Translation')
    original_story = models.ForeignKey(
        'self',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='translation_stories',
        verbose_name='Original Story'
    )
    language = models.CharField(
        max_length=20,
        choices=Language.choices,
        default=Language.ENGLISH,
        verbose_name='Language'
    )

    # Publication
    published_at = models.DateTimeField(null=True, blank=True, verbose_name='Published At')
    published_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='published_stories',
        verbose_name='Published By'
    )

    class Meta:
        db_table = 'newsroom_stories'
        ordering = ['-created_at']
        verbose_name = 'Story'
        verbose_name_plural = 'Stories'
        indexes = [
            models.Index(fields=['original_story', 'is_translation'], name='story_original_idx'),
        ]

    def __str__(self):
        return self.title

    def clean(self):
        if not self.is_translation and self.original_story_id:
            raise ValidationError({'original_story': 'Only translation stories link to an original story'})
        if self.is_translation:
            if not self.original_story_id:
                raise ValidationError({'original_story': 'Translation stories must link to an original story'})
            if self.original_story.is_translation:
                raise ValidationError({'original_story': 'A translation cannot translate another translation'})

    def set_stage(self, stage):
        """Move to ``stage`` and keep the legacy status column in step."""
        self.stage = StoryStage(stage)
        self.status = STAGE_TO_STATUS[self.stage]

    def classification_types(self):
        return set(self.classifications.values_list('type', flat=True))

    @classmethod
    def build_unique_slug(cls, title, suffix=None):
        base = slugify(title)[:250] or 'story'
        if suffix:
            base = f"{base}-{suffix.lower()}"
        slug = base
        counter = 2
        while cls.objects.filter(slug=slug).exists():
            slug = f"{base}-{counter}"
            counter += 1
        return slug

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = self.build_unique_slug(self.title, self.language if self.is_translation else None)
        super().save(*args, **kwargs)


class Translation(BaseModel):
    """
    A request to translate a story into one language, assigned to a translator.

    Distinct from the translation Story row it produces. Requests are never
    deleted, only moved forward through their statuses.
    """

    original_story = models.ForeignKey(
        Story,
        on_delete=models.CASCADE,
        related_name='translations',
        verbose_name='Original Story'
    )
    translated_story = models.ForeignKey(
        Story,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='translation_requests',
        verbose_name='Translated Story'
    )
    assigned_to = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='assigned_translations',
        verbose_name='Translator'
    )
    reviewer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='reviewed_translations',
        verbose_name='Reviewer'
    )
    target_language = models.CharField(
        max_length=20,
        choices=Language.choices,
        verbose_name='Target Language'
    )
    status = models.CharField(
        max_length=20,
        choices=TranslationStatus.choices,
        default=TranslationStatus.PENDING,
        db_index=True,
        verbose_name='Status'
    )

    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    reviewed_at = models.DateTimeField(null=True, blank=True)
    approved_at = models.DateTimeField(null=True, blank=True)
    rejected_at = models.DateTimeField(null=True, blank=True)
    published_at = models.DateTimeField(null=True, blank=True)

    translator_notes = models.TextField(blank=True)
    reviewer_notes = models.TextField(blank=True)
    rejection_reason = models.TextField(blank=True)

    class Meta:
        db_table = 'newsroom_translations'
        ordering = ['-created_at']
        verbose_name = 'Translation'
        verbose_name_plural = 'Translations'

    def __str__(self):
        return f"{self.original_story_id} -> {self.target_language} ({self.status})"


class RevisionRequest(BaseModel):
    """A request to rework a story, sending it back to its author."""

    story = models.ForeignKey(
        Story,
        on_delete=models.CASCADE,
        related_name='revision_requests',
        verbose_name='Story'
    )
    requested_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='requested_revisions',
        verbose_name='Requested By'
    )
    requested_by_role = models.CharField(max_length=20, choices=StaffRole.choices)
    assigned_to = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='assigned_revisions',
        verbose_name='Assigned To'
    )
    reason = models.TextField(verbose_name='Reason')
    resolved_at = models.DateTimeField(null=True, blank=True, verbose_name='Resolved At')

    class Meta:
        db_table = 'newsroom_revision_requests'
        ordering = ['-created_at']
        verbose_name = 'Revision Request'
        verbose_name_plural = 'Revision Requests'

    def __str__(self):
        return f"Revision for {self.story_id}"
