"""Credential providers for the GitHub API.

The host client never reads the environment itself. It is handed a
CredentialProvider, so tests can pass a fixed token (or none at all) and
the CLI can decide where tokens come from.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class CredentialProvider(ABC):
    """Source of an API token for a given host."""

    @abstractmethod
    def get_token(self, host: str) -> str | None:
        """Return a token for ``host``, or None if this source has none.

        Must not raise for the ordinary "no credential here" case.
        """


class StaticCredentialProvider(CredentialProvider):
    """Always returns the token it was built with."""

    def __init__(self, token: str | None):
        self._token = token

    def get_token(self, host: str) -> str | None:
        return self._token or None


class ChainCredentialProvider(CredentialProvider):
    """Asks each provider in turn; the first non-empty token wins."""

    def __init__(self, *providers: CredentialProvider):
        self._providers = providers

    def get_token(self, host: str) -> str | None:
        for provider in self._providers:
            token = provider.get_token(host)
            if token:
                return token
        return None
