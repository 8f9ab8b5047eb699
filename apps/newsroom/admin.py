"""
Admin interface for newsroom stories and lookups.

Stage and status are read-only here; they change through the workflow API.
"""

from django.contrib import admin

from apps.core.models import AuditLog, StaffProfile
from .models import Category, Classification, RevisionRequest, Story, Tag, Translation


@admin.register(Story)
class StoryAdmin(admin.ModelAdmin):
    list_display = ['title', 'stage', 'status', 'author', 'language', 'is_translation', 'updated_at']
    list_filter = ['stage', 'language', 'is_translation']
    search_fields = ['title', 'slug']
    readonly_fields = ['stage', 'status', 'published_at', 'published_by', 'created_at', 'updated_at']
    filter_horizontal = ['tags', 'classifications']
    raw_id_fields = ['author', 'assigned_reviewer', 'assigned_approver', 'original_story']


@admin.register(Translation)
class TranslationAdmin(admin.ModelAdmin):
    list_display = ['original_story', 'target_language', 'status', 'assigned_to', 'updated_at']
    list_filter = ['status', 'target_language']
    readonly_fields = ['status', 'created_at', 'updated_at']
    raw_id_fields = ['original_story', 'translated_story', 'assigned_to', 'reviewer']


@admin.register(Classification)
class ClassificationAdmin(admin.ModelAdmin):
    list_display = ['name', 'type', 'is_active', 'sort_order']
    list_filter = ['type', 'is_active']
    prepopulated_fields = {'slug': ('name',)}


@admin.register(Category, Tag)
class LookupAdmin(admin.ModelAdmin):
    list_display = ['name', 'slug']
    prepopulated_fields = {'slug': ('name',)}


@admin.register(RevisionRequest)
class RevisionRequestAdmin(admin.ModelAdmin):
    list_display = ['story', 'requested_by', 'assigned_to', 'created_at', 'resolved_at']
    raw_id_fields = ['story', 'requested_by', 'assigned_to']


@admin.register(StaffProfile)
class StaffProfileAdmin(admin.ModelAdmin):
    list_display = ['user', 'role', 'created_at']
    list_filter = ['role']
    search_fields = ['user__username', 'user__email']


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ['action', 'target_type', 'target_id', 'previous_state', 'new_state', 'actor', 'created_at']
    list_filter = ['action', 'target_type']
    search_fields = ['target_id', 'request_id']

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
