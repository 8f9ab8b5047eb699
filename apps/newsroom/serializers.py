"""
Newsroom serializers.

Payload serializers define the accepted shape of workflow requests; the
workflow engine runs them before any permission or state checks. Output
serializers render stories and translation requests.
"""

from rest_framework import serializers

from apps.core.serializers import UserSummarySerializer
from .models import Category, Classification, Story, Tag, Translation
from .state_machine import Language, StoryAction, TranslationAction


# ============================================================================
# Workflow payloads
# ============================================================================

class TranslationLanguageSerializer(serializers.Serializer):
    """One (language, translator) pair for send_for_translation."""

    language = serializers.ChoiceField(choices=Language.choices)
    translator_id = serializers.CharField()


class StageTransitionSerializer(serializers.Serializer):
    """Body of POST /api/newsroom/stories/{id}/stage/."""

    action = serializers.ChoiceField(choices=[a.value for a in StoryAction])
    assigned_user_id = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    checklist_data = serializers.DictField(child=serializers.BooleanField(), required=False)
    translation_languages = TranslationLanguageSerializer(many=True, required=False)
    reason = serializers.CharField(required=False, allow_blank=True, trim_whitespace=True)

    def validate_translation_languages(self, value):
        languages = [item['language'] for item in value]
        duplicates = sorted({lang for lang in languages if languages.count(lang) > 1})
        if duplicates:
            raise serializers.ValidationError(
                f"Each language may be requested once: {', '.join(duplicates)}"
            )
        return value


class TranslationTransitionSerializer(serializers.Serializer):
    """Body of POST /api/newsroom/translations/{id}/transition/."""

    action = serializers.ChoiceField(choices=[a.value for a in TranslationAction])
    notes = serializers.CharField(required=False, allow_blank=True)
    reason = serializers.CharField(required=False, allow_blank=True)


class ReassignSerializer(serializers.Serializer):
    """Body of POST /api/newsroom/stories/{id}/reassign/."""

    type = serializers.ChoiceField(choices=['reviewer', 'approver'])
    assigned_to_id = serializers.CharField()


# ============================================================================
# Output
# ============================================================================

class CategorySerializer(serializers.ModelSerializer):
    class Meta:
        model = Category
        fields = ['id', 'name', 'slug']


class TagSerializer(serializers.ModelSerializer):
    class Meta:
        model = Tag
        fields = ['id', 'name', 'slug']


class ClassificationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Classification
        fields = ['id', 'name', 'slug', 'type']


class StoryListSerializer(serializers.ModelSerializer):
    """Compact serializer for story lists."""

    author = UserSummarySerializer(read_only=True)

    class Meta:
        model = Story
        fields = [
            'id',
            'title',
            'slug',
            'stage',
            'status',
            'language',
            'is_translation',
            'author',
            'updated_at',
        ]


class StorySerializer(serializers.ModelSerializer):
    """
    Story with the relations workflow callers need: author, assigned
    reviewer and approver, and category.

    When the serializer context carries an ``actor``, the actions that
    actor can currently take are included.
    """

    author = UserSummarySerializer(read_only=True)
    assigned_reviewer = UserSummarySerializer(read_only=True)
    assigned_approver = UserSummarySerializer(read_only=True)
    published_by = UserSummarySerializer(read_only=True)
    category = CategorySerializer(read_only=True)
    tags = TagSerializer(many=True, read_only=True)
    classifications = ClassificationSerializer(many=True, read_only=True)
    available_actions = serializers.SerializerMethodField()

    class Meta:
        model = Story
        fields = [
            'id',
            'title',
            'slug',
            'content',
            'stage',
            'status',
            'author',
            'author_role',
            'assigned_reviewer',
            'assigned_approver',
            'category',
            'tags',
            'classifications',
            'author_checklist',
            'reviewer_checklist',
            'approver_checklist',
            'translation_checklist',
            'is_translation',
            'original_story',
            'language',
            'published_at',
            'published_by',
            'available_actions',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def get_available_actions(self, obj):
        actor = self.context.get('actor')
        if actor is None:
            return []
        from .workflow import available_actions
        return available_actions(obj, actor)


class TranslationSerializer(serializers.ModelSerializer):
    assigned_to = UserSummarySerializer(read_only=True)
    reviewer = UserSummarySerializer(read_only=True)

    class Meta:
        model = Translation
        fields = [
            'id',
            'original_story',
            'translated_story',
            'assigned_to',
            'reviewer',
            'target_language',
            'status',
            'started_at',
            'completed_at',
            'reviewed_at',
            'approved_at',
            'rejected_at',
            'published_at',
            'translator_notes',
            'reviewer_notes',
            'rejection_reason',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields
