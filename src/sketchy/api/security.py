"""Shared-secret check for the admin maintenance endpoints."""

from __future__ import annotations

import logging
import secrets

from fastapi import Request

from sketchy.core.errors import AuthorizationError, ConfigurationError

logger = logging.getLogger(__name__)

ADMIN_HEADER = "X-Admin-Key"
ADMIN_QUERY_PARAM = "admin_key"


def check_admin_secret(expected: str | None, provided: str | None) -> None:
    """Validate *provided* against the configured secret.

    Raises:
        ConfigurationError: If no secret is configured on the server.
        AuthorizationError: If *provided* is missing or does not match.
    """
    if not expected:
        raise ConfigurationError("Server configuration error", "Admin secret is not configured")
    if not provided or not secrets.compare_digest(provided.encode(), expected.encode()):
        logger.warning("Rejected admin request with missing or invalid credential")
        raise AuthorizationError("Unauthorized", "Invalid or missing admin key")


async def require_admin(request: Request) -> None:
    """FastAPI dependency guarding maintenance routes.

    The credential may be sent as the ``X-Admin-Key`` header or the
    ``admin_key`` query parameter.
    """
    provided = request.headers.get(ADMIN_HEADER) or request.query_params.get(ADMIN_QUERY_PARAM)
    check_admin_secret(request.app.state.config.admin_secret, provided)
