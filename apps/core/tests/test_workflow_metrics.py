"""
Tests for Prometheus metrics and request ID propagation.

Tests cover:
- Transition outcome counters
- Cascade counters, counted on commit
- The /metrics/ endpoint
- X-Request-ID handling in the middleware
"""

import uuid
from unittest.mock import patch

import pytest
from django.db import OperationalError
from django.contrib.auth.models import AnonymousUser
from django.test import RequestFactory
from django.http import HttpResponse
from prometheus_client import REGISTRY

from apps.core.exceptions import PermissionDeniedError, TransientStoreError
from apps.core.middleware import (
    RequestIDFilter,
    RequestIDMiddleware,
    bind_request_user,
    clear_request_context,
    get_client_ip,
    get_request_context,
    get_request_id,
)
from apps.core.metrics import increment_cascade, increment_stage_transition
from apps.newsroom import cascades
from apps.newsroom.state_machine import Language, StoryAction, StoryStage
from apps.newsroom.workflow import apply_transition


def sample(name, labels):
    return REGISTRY.get_sample_value(name, labels) or 0.0


# ============================================================================
# Counters
# ============================================================================

class TestTransitionCounters:
    """Counter increments by action and outcome."""

    def test_success_increment(self):
        labels = {'action': 'approve_story', 'outcome': 'success'}
        before = sample('newsroom_stage_transitions_total', labels)

        increment_stage_transition('approve_story')

        assert sample('newsroom_stage_transitions_total', labels) == before + 1

    def test_cascade_increment_by_count(self):
        labels = {'cascade': 'auto_publish_translation'}
        before = sample('newsroom_workflow_cascades_total', labels)

        increment_cascade('auto_publish_translation', 3)
        increment_cascade('auto_publish_translation', 0)

        assert sample('newsroom_workflow_cascades_total', labels) == before + 3

    @pytest.mark.django_db
    def test_engine_records_error_kind(self, make_story, journalist, as_actor):
        story = make_story(journalist)
        labels = {'action': 'mark_as_translated', 'outcome': 'forbidden'}
        before = sample('newsroom_stage_transitions_total', labels)

        with pytest.raises(PermissionDeniedError):
            apply_transition(story.pk, StoryAction.MARK_AS_TRANSLATED, as_actor(journalist))

        assert sample('newsroom_stage_transitions_total', labels) == before + 1


class TestCascadeCounters:
    """Cascades are counted once their transaction commits."""

    labels = {'cascade': 'auto_publish_translation'}

    @pytest.fixture
    def translated_original(self, make_story, journalist):
        original = make_story(journalist, stage=StoryStage.TRANSLATED)
        make_story(
            journalist, stage=StoryStage.TRANSLATED, is_translation=True,
            original_story=original, language=Language.XHOSA,
        )
        return original

    @pytest.mark.django_db
    def test_counted_on_commit(self, translated_original, editor, as_actor, django_capture_on_commit_callbacks):
        before = sample('newsroom_workflow_cascades_total', self.labels)

        with django_capture_on_commit_callbacks() as callbacks:
            apply_transition(translated_original.pk, StoryAction.PUBLISH_STORY, as_actor(editor))

        assert sample('newsroom_workflow_cascades_total', self.labels) == before

        for callback in callbacks:
            callback()

        assert sample('newsroom_workflow_cascades_total', self.labels) == before + 1

    @pytest.mark.django_db
    def test_rolled_back_cascade_not_counted(
        self, translated_original, editor, as_actor, django_capture_on_commit_callbacks
    ):
        before = sample('newsroom_workflow_cascades_total', self.labels)

        with django_capture_on_commit_callbacks(execute=True) as callbacks:
            with patch.object(cascades.logger, 'info', side_effect=OperationalError('disk I/O error')):
                with pytest.raises(TransientStoreError):
                    apply_transition(translated_original.pk, StoryAction.PUBLISH_STORY, as_actor(editor))

        assert callbacks == []
        assert sample('newsroom_workflow_cascades_total', self.labels) == before


# ============================================================================
# Metrics endpoint
# ============================================================================

class TestMetricsEndpoint:

    @pytest.mark.django_db
    def test_exposes_workflow_metrics(self, client):
        increment_stage_transition('publish_story')

        response = client.get('/metrics/')

        assert response.status_code == 200
        body = response.content.decode()
        assert 'newsroom_stage_transitions_total' in body
        assert 'newsroom_stage_transition_duration_seconds' in body


# ============================================================================
# Request ID middleware
# ============================================================================

class TestRequestIDMiddleware:
    """X-Request-ID is validated, stored in context, and echoed."""

    def setup_method(self):
        self.factory = RequestFactory()
        self.middleware = RequestIDMiddleware(lambda request: HttpResponse())

    def teardown_method(self):
        clear_request_context()

    def test_generates_id_when_missing(self):
        request = self.factory.get('/api/newsroom/stories/')

        self.middleware.process_request(request)

        uuid.UUID(request.request_id)
        assert get_request_id() == request.request_id

    def test_keeps_valid_incoming_id(self):
        incoming = str(uuid.uuid4())
        request = self.factory.get('/', HTTP_X_REQUEST_ID=incoming)

        self.middleware.process_request(request)
        response = self.middleware.process_response(request, HttpResponse())

        assert request.request_id == incoming
        assert response['X-Request-ID'] == incoming
        assert get_request_id() is None

    def test_replaces_malformed_incoming_id(self):
        request = self.factory.get('/', HTTP_X_REQUEST_ID='not-a-uuid')

        self.middleware.process_request(request)

        assert request.request_id != 'not-a-uuid'

    def test_context_carries_client_details(self):
        request = self.factory.get('/', HTTP_USER_AGENT='curl/8.0', REMOTE_ADDR='198.51.100.4')

        self.middleware.process_request(request)

        context = get_request_context()
        assert context['ip_address'] == '198.51.100.4'
        assert context['user_agent'] == 'curl/8.0'

    def test_forwarded_for_takes_first_address(self):
        request = self.factory.get('/', HTTP_X_FORWARDED_FOR='203.0.113.9, 10.0.0.2')
        assert get_client_ip(request) == '203.0.113.9'

    def test_log_filter_adds_request_id(self):
        import logging

        record = logging.LogRecord('apps', logging.INFO, __file__, 1, 'msg', None, None)
        assert RequestIDFilter().filter(record)
        assert record.request_id == '-'

    def test_bind_request_user_ignores_anonymous(self):
        request = self.factory.get('/')
        self.middleware.process_request(request)

        bind_request_user(AnonymousUser())
        assert get_request_context()['user_id'] is None

    @pytest.mark.django_db
    def test_bind_request_user(self, editor):
        request = self.factory.get('/')
        self.middleware.process_request(request)

        bind_request_user(editor)

        assert get_request_context()['user_id'] == str(editor.pk)
