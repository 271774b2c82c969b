"""Error taxonomy for pr-dump.

Every predictable failure is one of these. Core code raises them; the CLI
catches PrDumpError at its boundary, prints a single line and exits with
the class's exit_code. PyGithub and requests exceptions never escape the
host client untranslated.
"""

from __future__ import annotations


class PrDumpError(Exception):
    """Base class for all pr-dump failures."""

    exit_code = 1


class ArgError(PrDumpError):
    """Bad or missing PR reference, flag or config value."""

    exit_code = 2


class AuthError(PrDumpError):
    """No usable credential, or the host rejected the one we sent."""

    exit_code = 3


class NotFoundError(PrDumpError):
    """The PR reference does not resolve on the host."""

    exit_code = 4


class RateLimitError(PrDumpError):
    """The host kept throttling after all retry attempts were spent."""

    exit_code = 5


class HostError(PrDumpError):
    """Any other host-side failure (5xx, malformed payload, transport error)."""

    exit_code = 6

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class WriteError(PrDumpError):
    """The output destination could not be written."""

    exit_code = 7
