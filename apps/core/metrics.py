"""
Prometheus metrics for the newsroom workflow.

Metrics included:
- newsroom_stage_transitions_total: Counter by action and outcome
- newsroom_workflow_cascades_total: Counter of cascaded state changes
- newsroom_stage_transition_duration_seconds: Histogram of engine call time

Cardinality Guidelines:
- All labels MUST be low-cardinality (small, bounded set of values)
- ALLOWED label values: action names, error kinds, cascade names
- FORBIDDEN label values: story IDs, user IDs, titles
- If per-story detail is needed, use the audit log instead

Usage:
    from apps.core.metrics import increment_stage_transition

    increment_stage_transition(action='approve_story', outcome='success')

Setup:
    Add to urls.py:
        from apps.core.metrics import metrics_view
        urlpatterns = [
            path('metrics/', metrics_view, name='prometheus-metrics'),
        ]
"""

import time
from contextlib import contextmanager
import logging

from django.http import HttpResponse
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST

logger = logging.getLogger(__name__)


# ============================================================================
# Metric Definitions
# ============================================================================

stage_transitions_total = Counter(
    'newsroom_stage_transitions_total',
    'Total workflow transition attempts',
    ['action', 'outcome']  # outcome: success or an error kind
)

workflow_cascades_total = Counter(
    'newsroom_workflow_cascades_total',
    'State changes applied by workflow cascades',
    ['cascade']  # auto_publish_translation, auto_mark_as_translated, ...
)

stage_transition_duration_seconds = Histogram(
    'newsroom_stage_transition_duration_seconds',
    'Time spent applying a workflow transition',
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0]
)


# ============================================================================
# Helper Functions
# ============================================================================

def increment_stage_transition(action, outcome='success'):
    """Increment workflow transition counter."""
    stage_transitions_total.labels(action=action, outcome=outcome).inc()


def increment_cascade(cascade, count=1):
    """Increment cascade counter by the number of rows the cascade touched."""
    if count:
        workflow_cascades_total.labels(cascade=cascade).inc(count)


@contextmanager
def observe_transition_duration():
    """Context manager to time a workflow transition."""
    start = time.time()
    try:
        yield
    finally:
        stage_transition_duration_seconds.observe(time.time() - start)


# ============================================================================
# Metrics View
# ============================================================================

def metrics_view(request):
    """
    Django view to expose Prometheus metrics.

    Returns metrics in Prometheus text format.
    """
    return HttpResponse(generate_latest(), content_type=CONTENT_TYPE_LATEST)
