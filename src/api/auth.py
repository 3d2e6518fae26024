"""Auth key check: Authorization: Bearer <key> header, or ?auth_key=<key>."""

import hmac

from fastapi import Request

BEARER_PREFIX = "Bearer "
AUTH_QUERY_PARAM = "auth_key"


def _matches(candidate: str | None, secret: str) -> bool:
    if candidate is None:
        return False
    return hmac.compare_digest(candidate.encode("utf-8"), secret.encode("utf-8"))


class AuthGate:
    """Stateless predicate over a request. An empty secret disables auth."""

    def __init__(self, secret: str) -> None:
        self._secret = secret or ""

    @property
    def enabled(self) -> bool:
        return bool(self._secret)

    def validate(self, request: Request) -> bool:
        if not self._secret:
            return True
        header = request.headers.get("Authorization")
        if header and header.startswith(BEARER_PREFIX):
            if _matches(header[len(BEARER_PREFIX) :], self._secret):
                return True
        return _matches(request.query_params.get(AUTH_QUERY_PARAM), self._secret)
