"""
Newsroom workflow API views.

Thin adapters over apps.newsroom.workflow: parse the request, call the
engine, serialize the result. Errors raised by the engine are rendered by
the project exception handler.
"""

from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from apps.core.audit import RequestMetadata
from apps.core.views import RequestUserContextMixin

from .models import Story, Translation
from .serializers import StoryListSerializer, StorySerializer, TranslationSerializer
from .workflow import Actor, apply_transition, apply_translation_transition, reassign as reassign_story


def _split_action(data):
    """Separate the action name from the rest of the request body."""
    payload = {key: value for key, value in data.items() if key != 'action'}
    return data.get('action'), payload


class StoryViewSet(RequestUserContextMixin, viewsets.ReadOnlyModelViewSet):
    """
    Story workflow API.

    GET  /api/newsroom/stories/                 - List stories
    GET  /api/newsroom/stories/{id}/            - Story detail with available actions
    POST /api/newsroom/stories/{id}/stage/      - Apply a stage transition
    POST /api/newsroom/stories/{id}/reassign/   - Reassign reviewer or approver
    """

    permission_classes = [IsAuthenticated]
    queryset = (
        Story.objects
        .select_related('author', 'assigned_reviewer', 'assigned_approver', 'category', 'published_by')
        .prefetch_related('tags', 'classifications')
    )

    def get_serializer_class(self):
        if self.action == 'list':
            return StoryListSerializer
        return StorySerializer

    def get_serializer_context(self):
        context = super().get_serializer_context()
        context['actor'] = Actor.from_user(self.request.user)
        return context

    def get_queryset(self):
        queryset = super().get_queryset()
        stage = self.request.query_params.get('stage')
        if stage:
            queryset = queryset.filter(stage=stage.upper())
        return queryset

    @action(detail=True, methods=['post'])
    def stage(self, request, pk=None):
        """Apply a workflow action to the story."""
        action_name, payload = _split_action(request.data)
        story = apply_transition(
            pk,
            action_name,
            Actor.from_user(request.user),
            payload,
            request_meta=RequestMetadata.from_request(request),
        )
        return Response(StorySerializer(story, context=self.get_serializer_context()).data)

    @action(detail=True, methods=['post'])
    def reassign(self, request, pk=None):
        """Replace the assigned reviewer or approver."""
        story = reassign_story(
            pk,
            request.data.get('type'),
            request.data.get('assigned_to_id'),
            Actor.from_user(request.user),
            request_meta=RequestMetadata.from_request(request),
        )
        return Response(StorySerializer(story, context=self.get_serializer_context()).data)


class TranslationViewSet(RequestUserContextMixin, viewsets.ReadOnlyModelViewSet):
    """
    Translation request API.

    GET  /api/newsroom/translations/{id}/             - Translation detail
    POST /api/newsroom/translations/{id}/transition/  - Apply a translation action
    """

    permission_classes = [IsAuthenticated]
    serializer_class = TranslationSerializer
    queryset = Translation.objects.select_related('assigned_to', 'reviewer', 'translated_story')

    @action(detail=True, methods=['post'])
    def transition(self, request, pk=None):
        action_name, payload = _split_action(request.data)
        translation = apply_translation_transition(
            pk,
            action_name,
            Actor.from_user(request.user),
            payload,
            request_meta=RequestMetadata.from_request(request),
        )
        return Response(TranslationSerializer(translation).data)
