"""
Request context middleware for the newsroom.

Each request gets an ID (taken from a well-formed incoming X-Request-ID
header, or generated). The ID, the acting user, client IP and user agent
are kept in thread-local storage so that log records and audit entries
written anywhere during the request can be tied back to it.

    MIDDLEWARE = [
        ...
        'apps.core.middleware.RequestIDMiddleware',
    ]
"""

import uuid
import threading
import logging
from django.utils.deprecation import MiddlewareMixin

logger = logging.getLogger(__name__)

CONTEXT_FIELDS = ('request_id', 'user_id', 'path', 'ip_address', 'user_agent')

_request_context = threading.local()


def get_request_id():
    """Current request ID, or None outside a request."""
    return getattr(_request_context, 'request_id', None)


def get_request_context():
    """All context fields for the current thread; missing ones are None."""
    return {name: getattr(_request_context, name, None) for name in CONTEXT_FIELDS}


def set_request_context(request_id, user_id=None, path=None, ip_address=None, user_agent=None):
    """
    Bind request context to the current thread.

    Management commands and tests call this directly so that audit
    records they write carry a request ID.
    """
    values = locals()
    for name in CONTEXT_FIELDS:
        setattr(_request_context, name, values[name])


def clear_request_context():
    set_request_context(None)


def bind_request_user(user):
    """
    Record the authenticated user in the request context.

    DRF authenticates token requests inside the view, after
    RequestIDMiddleware has run, so API views call this once
    ``request.user`` is resolved.
    """
    if user is not None and user.is_authenticated:
        _request_context.user_id = str(user.pk)


def get_client_ip(request):
    """First address in X-Forwarded-For, else REMOTE_ADDR."""
    forwarded = request.META.get('HTTP_X_FORWARDED_FOR')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR')


def _resolve_request_id(raw):
    """Keep an incoming ID only if it is a UUID."""
    if raw:
        try:
            return str(uuid.UUID(raw))
        except (ValueError, TypeError):
            logger.debug(f"Discarding malformed request ID {raw!r}")
    return str(uuid.uuid4())


class RequestIDMiddleware(MiddlewareMixin):
    """
    Attach ``request.request_id``, bind the thread-local request context,
    and echo the ID back in the X-Request-ID response header.
    """

    REQUEST_ID_HEADER = 'HTTP_X_REQUEST_ID'
    RESPONSE_HEADER = 'X-Request-ID'

    def process_request(self, request):
        request_id = _resolve_request_id(request.META.get(self.REQUEST_ID_HEADER))

        set_request_context(
            request_id,
            path=request.path,
            ip_address=get_client_ip(request),
            user_agent=request.META.get('HTTP_USER_AGENT', ''),
        )
        # Session users are known here; token users are bound by the view
        bind_request_user(getattr(request, 'user', None))
        request.request_id = request_id

    def process_response(self, request, response):
        request_id = getattr(request, 'request_id', None)
        if request_id:
            response[self.RESPONSE_HEADER] = request_id

        clear_request_context()
        return response


class RequestIDFilter(logging.Filter):
    """
    Logging filter that stamps records with the current request ID ('-'
    outside a request). Used by the ``verbose`` formatter in LOGGING.
    """

    def filter(self, record):
        record.request_id = get_request_id() or '-'
        return True
