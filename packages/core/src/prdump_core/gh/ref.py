"""Turning a command-line PR reference into a PullRequestRef."""

from __future__ import annotations

import logging
import re
import subprocess
from typing import Callable
from urllib.parse import urlparse

from prdump_core.errors import ArgError
from prdump_core.models import GITHUB_HOST, PullRequestRef

logger = logging.getLogger(__name__)

_NAME = r"[A-Za-z0-9_.-]+"
_FULL_REF_RE = re.compile(rf"^(?P<owner>{_NAME})/(?P<repo>{_NAME})#(?P<number>[0-9]+)$")
_NUMBER_RE = re.compile(r"^#?(?P<number>[0-9]+)$")
_DIGITS_RE = re.compile(r"[0-9]+")
_REPO_RE = re.compile(rf"^(?P<owner>{_NAME})/(?P<repo>{_NAME})$")
# git@github.com:owner/repo.git
_SCP_REMOTE_RE = re.compile(rf"^(?:[^@/]+@)?(?P<host>[^:/]+):(?P<owner>{_NAME})/(?P<repo>{_NAME})$")


def _positive(number: str, original: str) -> int:
    value = int(number)
    if value < 1:
        raise ArgError(f"Invalid pull request number in {original!r}.")
    return value


def _strip_git_suffix(name: str) -> str:
    return name[:-4] if name.endswith(".git") else name


def git_origin_url() -> str | None:
    """Return the URL of the current directory's ``origin`` remote, or None."""
    try:
        result = subprocess.run(
            ["git", "remote", "get-url", "origin"],
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return None
    if result.returncode != 0:
        return None
    return result.stdout.strip() or None


def parse_remote_url(url: str) -> tuple[str, str, str] | None:
    """Return (host, owner, repo) for an https/ssh/scp-style git remote URL."""
    url = url.strip()
    if "://" in url:
        parsed = urlparse(url)
        parts = [p for p in parsed.path.split("/") if p]
        if not parsed.hostname or len(parts) < 2:
            return None
        return parsed.hostname, parts[-2], _strip_git_suffix(parts[-1])

    match = _SCP_REMOTE_RE.match(url)
    if not match:
        return None
    return match["host"], match["owner"], _strip_git_suffix(match["repo"])


def _parse_url(text: str) -> PullRequestRef:
    parsed = urlparse(text)
    parts = [p for p in parsed.path.split("/") if p]
    # /<owner>/<repo>/pull/<n>[/files|/commits|...]
    if (
        not parsed.hostname
        or len(parts) < 4
        or parts[2] not in ("pull", "pulls")
        or not _DIGITS_RE.fullmatch(parts[3])
    ):
        raise ArgError(f"Not a pull request URL: {text!r}")
    return PullRequestRef(
        owner=parts[0],
        repo=parts[1],
        number=_positive(parts[3], text),
        host=parsed.hostname,
    )


def parse_ref(
    text: str,
    default_repo: str | None = None,
    remote_url_lookup: Callable[[], str | None] = git_origin_url,
) -> PullRequestRef:
    """Resolve a PR reference.

    Accepted forms:
      https://github.com/owner/repo/pull/42   (any host, trailing path allowed)
      owner/repo#42
      42 or #42  (repository from ``default_repo``, else the git origin remote)
    """
    text = (text or "").strip()
    if not text:
        raise ArgError("A pull request reference is required.")

    if text.startswith(("http://", "https://")):
        return _parse_url(text)

    match = _FULL_REF_RE.match(text)
    if match:
        return PullRequestRef(
            owner=match["owner"],
            repo=match["repo"],
            number=_positive(match["number"], text),
        )

    match = _NUMBER_RE.match(text)
    if not match:
        raise ArgError(f"Unrecognised pull request reference: {text!r}")
    number = _positive(match["number"], text)

    if default_repo:
        repo_match = _REPO_RE.match(default_repo.strip())
        if not repo_match:
            raise ArgError(f"Repository must be in owner/name format, got {default_repo!r}.")
        return PullRequestRef(owner=repo_match["owner"], repo=repo_match["repo"], number=number)

    remote = remote_url_lookup()
    resolved = parse_remote_url(remote) if remote else None
    if resolved is None:
        raise ArgError(
            f"Cannot tell which repository PR {text} belongs to. "
            "Run inside a git checkout with an 'origin' remote, pass --repo, or use a full URL."
        )
    host, owner, repo = resolved
    logger.debug("Inferred repository %s/%s on %s from git remote.", owner, repo, host)
    return PullRequestRef(owner=owner, repo=repo, number=number, host=host or GITHUB_HOST)
