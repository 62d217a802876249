"""Bearer token authentication for Django REST Framework.

Tokens are HS256 JWTs issued by ``CredentialService``.  Fail Closed:
missing, invalid or expired credentials on protected routes yield 401 with
the reason in the envelope ``code``.
"""

from __future__ import annotations

import structlog
from rest_framework import exceptions
from rest_framework.authentication import BaseAuthentication, get_authorization_header

from modules.accounts.exceptions import SessionError
from modules.accounts.repositories.django_repository import UserDjangoRepository
from modules.accounts.services import CredentialService

logger = structlog.get_logger(__name__)


class BearerTokenAuthentication(BaseAuthentication):
    keyword = b"bearer"

    def authenticate(self, request):
        auth = get_authorization_header(request).split()
        if not auth or auth[0].lower() != self.keyword:
            # No credentials: IsAuthenticated turns this into a 401 "missing"
            return None
        if len(auth) != 2:
            raise exceptions.AuthenticationFailed(
                "Invalid Authorization header.", code="invalid"
            )

        try:
            token = auth[1].decode()
        except UnicodeError:
            raise exceptions.AuthenticationFailed(
                "Invalid Authorization header.", code="invalid"
            ) from None

        try:
            user = CredentialService(UserDjangoRepository()).validate_session(token)
        except SessionError as exc:
            logger.info("auth.token_rejected", reason=exc.reason)
            code = "expired" if exc.reason == "expired" else "invalid"
            raise exceptions.AuthenticationFailed(str(exc), code=code) from None

        structlog.contextvars.bind_contextvars(user_id=str(user.id))
        return (user, token)

    def authenticate_header(self, request) -> str:
        return 'Bearer realm="api"'


class OptionalBearerTokenAuthentication(BearerTokenAuthentication):
    """Treat any credential failure as an anonymous (guest) request."""

    def authenticate(self, request):
        try:
            return super().authenticate(request)
        except exceptions.AuthenticationFailed as exc:
            logger.debug("auth.optional_token_ignored", reason=exc.get_codes())
            return None


class OptionalAuthenticationMixin:
    """ViewSet mixin: actions named in ``optional_auth_actions`` accept
    guests and ignore stale tokens; every other action keeps the default
    authenticators.
    """

    optional_auth_actions: frozenset[str] = frozenset()

    def get_authenticators(self):
        # ``self.action`` is only resolved after the authenticators are built
        action = self.action_map.get(self.request.method.lower())
        if action in self.optional_auth_actions:
            return [OptionalBearerTokenAuthentication()]
        return super().get_authenticators()
