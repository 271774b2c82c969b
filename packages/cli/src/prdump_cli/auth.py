"""GitHub token resolution with gh CLI fallback.

Resolution order (stops at first success):
  1. Environment variables (CI / explicit override): GITHUB_TOKEN / GH_TOKEN
     for github.com, GH_ENTERPRISE_TOKEN / GITHUB_ENTERPRISE_TOKEN for any
     other host. A github.com token is never offered to another host.
  2. `gh auth token --hostname <host>` (GitHub CLI session after `gh auth login`)
"""

from __future__ import annotations

import logging
import os
import subprocess

from prdump_core.gh.credentials import ChainCredentialProvider, CredentialProvider
from prdump_core.models import GITHUB_COM_HOSTS

GITHUB_COM_TOKEN_VARS = ("GITHUB_TOKEN", "GH_TOKEN")
ENTERPRISE_TOKEN_VARS = ("GH_ENTERPRISE_TOKEN", "GITHUB_ENTERPRISE_TOKEN")

logger = logging.getLogger(__name__)


class EnvCredentialProvider(CredentialProvider):
    """Reads the token from the process environment."""

    def __init__(self, environ=None):
        self._environ = os.environ if environ is None else environ

    def get_token(self, host: str) -> str | None:
        names = GITHUB_COM_TOKEN_VARS if host in GITHUB_COM_HOSTS else ENTERPRISE_TOKEN_VARS
        for name in names:
            token = self._environ.get(name)
            if token:
                logger.debug("Resolved GitHub token from %s.", name)
                return token
        return None


class GhCliCredentialProvider(CredentialProvider):
    """Reuses the token that `gh auth login` stored."""

    def get_token(self, host: str) -> str | None:
        try:
            result = subprocess.run(
                ["gh", "auth", "token", "--hostname", host],
                capture_output=True,
                text=True,
                timeout=5,
            )
        except (FileNotFoundError, subprocess.TimeoutExpired):
            # gh is not installed or timed out.
            return None
        if result.returncode == 0:
            gh_token = result.stdout.strip()
            if gh_token:
                logger.debug("Resolved GitHub token via gh CLI session.")
                return gh_token
        return None


def default_credentials() -> CredentialProvider:
    return ChainCredentialProvider(EnvCredentialProvider(), GhCliCredentialProvider())
