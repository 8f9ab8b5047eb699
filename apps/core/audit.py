"""
Audit trail sink.

Every state-changing workflow operation writes one AuditLog row per state
change, inside the same transaction as the change itself. Request metadata
(IP, user agent, request ID) comes from an explicit RequestMetadata or,
failing that, from the thread-local request context.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from apps.core.middleware import get_client_ip, get_request_context
from apps.core.models import AuditLog

logger = logging.getLogger(__name__)

SENSITIVE_KEY_FRAGMENTS = ('password', 'token', 'secret', 'key', 'authorization')


@dataclass
class RequestMetadata:
    """Request attributes recorded alongside an audit entry."""
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    request_id: Optional[str] = None

    @classmethod
    def from_request(cls, request) -> 'RequestMetadata':
        return cls(
            ip_address=get_client_ip(request),
            user_agent=request.META.get('HTTP_USER_AGENT', ''),
            request_id=getattr(request, 'request_id', None),
        )

    @classmethod
    def from_context(cls) -> 'RequestMetadata':
        context = get_request_context()
        return cls(
            ip_address=context['ip_address'],
            user_agent=context['user_agent'],
            request_id=context['request_id'],
        )


def sanitize_details(details: Any) -> Any:
    """Drop keys that look like credentials, recursing into dicts and lists."""
    if isinstance(details, dict):
        return {
            key: sanitize_details(value)
            for key, value in details.items()
            if not any(fragment in str(key).lower() for fragment in SENSITIVE_KEY_FRAGMENTS)
        }
    if isinstance(details, (list, tuple)):
        return [sanitize_details(item) for item in details]
    return details


def record_audit(
    actor_id,
    action: str,
    target_type: str,
    target_id,
    previous_state: Optional[str] = None,
    new_state: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    request_meta: Optional[RequestMetadata] = None,
) -> AuditLog:
    """
    Append an audit record.

    Works both inside and outside a transaction; inside one, the row commits
    or rolls back with the caller's changes.

    Args:
        actor_id: Primary key of the acting user (None for system actions)
        action: Upper-case action name, e.g. APPROVE_STORY
        target_type: Entity type, e.g. "story" or "translation"
        target_id: Entity primary key
        previous_state: Stage or status before the change
        new_state: Stage or status after the change
        details: Free-form context; credential-like keys are stripped
        request_meta: Explicit request metadata

    Returns:
        The created AuditLog
    """
    meta = request_meta or RequestMetadata.from_context()

    entry = AuditLog.objects.create(
        actor_id=actor_id,
        action=action,
        target_type=target_type,
        target_id=str(target_id) if target_id is not None else '',
        previous_state=previous_state or '',
        new_state=new_state or '',
        details=sanitize_details(details or {}),
        ip_address=meta.ip_address or '',
        user_agent=meta.user_agent or '',
        request_id=meta.request_id or '',
    )
    logger.info(
        f"Audit {action} on {target_type} {target_id}: "
        f"{previous_state or '-'} -> {new_state or '-'}"
    )
    return entry
