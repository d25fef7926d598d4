"""
API Key authentication middleware.

Every endpoint except /health/ and /admin/ requires a valid API key in
the X-API-KEY header. Each key belongs to a named client (a branch
desk, a payment gateway callback, ...). The name is attached to the
request as ``request.api_client`` and stamped on reviews and payments.
"""

import hmac
import logging

from django.conf import settings
from django.http import JsonResponse

logger = logging.getLogger(__name__)

# Paths that don't require authentication
EXEMPT_PATHS = (
    '/health/',
    '/health',
    '/admin/',
)


def _error(status_code, detail):
    return JsonResponse(
        {'error': True, 'status_code': status_code, 'detail': detail},
        status=status_code,
    )


def resolve_client(provided_key, api_keys):
    """Return the client name owning provided_key, or None."""
    for key, client in api_keys.items():
        if hmac.compare_digest(key.encode(), provided_key.encode()):
            return client
    return None


class APIKeyMiddleware:
    """
    Middleware that checks for a valid API key in the X-API-KEY header.

    API_KEYS maps key → client name. If it is empty (e.g., during local
    development), the middleware lets every request through as the
    anonymous client.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request.api_client = ''

        if any(request.path.startswith(path) for path in EXEMPT_PATHS):
            return self.get_response(request)

        api_keys = getattr(settings, 'API_KEYS', {})
        if not api_keys:
            return self.get_response(request)

        provided_key = request.META.get('HTTP_X_API_KEY', '')
        if not provided_key:
            logger.warning(
                "Request to %s rejected: missing API key",
                request.path,
            )
            return _error(401, 'Authentication required. Provide X-API-KEY header.')

        client = resolve_client(provided_key, api_keys)
        if client is None:
            logger.warning(
                "Request to %s rejected: invalid API key",
                request.path,
            )
            return _error(403, 'Invalid API key.')

        request.api_client = client
        return self.get_response(request)
