from __future__ import annotations

from collections.abc import Callable

# Returns the teacher's bearer token, or None when no one is signed in.
CredentialProvider = Callable[[], str | None]


def static_token(token: str | None) -> CredentialProvider:
    def provider() -> str | None:
        return token

    return provider
