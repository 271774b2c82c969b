"""Read-only access to GitHub pull requests.

GitHubClient is the only place that talks to the host. It turns PyGithub
objects into prdump_core.models values and PyGithub/requests failures into
the prdump_core.errors taxonomy. Rate limiting is retried here with bounded
exponential backoff; nothing else is.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Callable, TypeVar

import requests
from github import (
    Auth,
    BadCredentialsException,
    Github,
    GithubException,
    RateLimitExceededException,
    UnknownObjectException,
)

from prdump_core.errors import AuthError, HostError, NotFoundError, RateLimitError
from prdump_core.gh.credentials import CredentialProvider
from prdump_core.models import GITHUB_COM_HOSTS, Comment, DiffHunk, PullRequestMetadata, PullRequestRef, to_utc
from prdump_core.utils.diff import is_excluded, parse_patch

logger = logging.getLogger(__name__)

T = TypeVar("T")

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def api_base_url(host: str) -> str:
    """GitHub.com has its own API host; Enterprise servers serve it under /api/v3."""
    if host in GITHUB_COM_HOSTS:
        return "https://api.github.com"
    return f"https://{host}/api/v3"


def _login(user) -> str:
    # Deleted accounts come back as None ("ghost" in the GitHub UI).
    return getattr(user, "login", None) or "ghost"


def _is_rate_limited(e: GithubException) -> bool:
    if isinstance(e, RateLimitExceededException) or e.status == 429:
        return True
    return e.status == 403 and "rate limit" in str(e).lower()


class GitHubClient:
    """Fetches metadata, comments and diff hunks for one pull request at a time."""

    def __init__(
        self,
        credentials: CredentialProvider,
        max_attempts: int = 3,
        backoff_seconds: float = 1.0,
        max_backoff_seconds: float = 30.0,
        timeout: float = 30,
        exclude: list[str] | None = None,
        include_reviews: bool = True,
        sleep: Callable[[float], None] = time.sleep,
        github_factory: Callable[..., Github] = Github,
    ):
        self._credentials = credentials
        self._max_attempts = max(1, int(max_attempts))
        self._backoff_seconds = float(backoff_seconds)
        self._max_backoff_seconds = float(max_backoff_seconds)
        self._timeout = timeout
        self._exclude = list(exclude or [])
        self._include_reviews = include_reviews
        self._sleep = sleep
        self._github_factory = github_factory
        self._clients: dict[str, Github] = {}

    @classmethod
    def from_config(cls, credentials: CredentialProvider, config: dict, **kwargs) -> GitHubClient:
        return cls(
            credentials,
            max_attempts=config["max_attempts"],
            backoff_seconds=config["backoff_seconds"],
            max_backoff_seconds=config["max_backoff_seconds"],
            timeout=config["timeout"],
            exclude=config["exclude"],
            include_reviews=config["include_reviews"],
            **kwargs,
        )

    # ------------------------------------------------------------------
    # Public contract
    # ------------------------------------------------------------------

    def fetch_metadata(self, ref: PullRequestRef) -> PullRequestMetadata:
        logger.info("Fetching metadata for %s", ref)
        return self._with_retry(ref, lambda: self._metadata(ref))

    def fetch_comments(self, ref: PullRequestRef) -> list[Comment]:
        logger.info("Fetching comments for %s", ref)
        return self._with_retry(ref, lambda: self._comments(ref))

    def fetch_diff(self, ref: PullRequestRef) -> list[DiffHunk]:
        logger.info("Fetching diff for %s", ref)
        return self._with_retry(ref, lambda: self._diff(ref))

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    def _github(self, host: str) -> Github:
        if host not in self._clients:
            token = self._credentials.get_token(host)
            if not token:
                env_var = "GITHUB_TOKEN" if host in GITHUB_COM_HOSTS else "GH_ENTERPRISE_TOKEN"
                raise AuthError(
                    f"No GitHub token found for {host}. Set {env_var} or run `gh auth login --hostname {host}` first."
                )
            # retry=None: PyGithub must not sleep through rate limits on its own;
            # _with_retry owns the attempt budget.
            self._clients[host] = self._github_factory(
                auth=Auth.Token(token),
                base_url=api_base_url(host),
                timeout=self._timeout,
                retry=None,
            )
        return self._clients[host]

    def _pull(self, ref: PullRequestRef):
        return self._github(ref.host).get_repo(ref.full_name).get_pull(ref.number)

    def _delay(self, attempt: int) -> float:
        return min(self._backoff_seconds * (2 ** (attempt - 1)), self._max_backoff_seconds)

    def _with_retry(self, ref: PullRequestRef, fetch: Callable[[], T]) -> T:
        """Run ``fetch``, retrying only on rate limiting, and translate failures."""
        for attempt in range(1, self._max_attempts + 1):
            try:
                return fetch()
            except BadCredentialsException as e:
                raise AuthError(f"GitHub rejected the token for {ref.host} (HTTP {e.status}).") from e
            except UnknownObjectException as e:
                raise NotFoundError(f"Pull request {ref} not found on {ref.host}.") from e
            except GithubException as e:
                if not _is_rate_limited(e):
                    raise HostError(f"GitHub API error for {ref}: HTTP {e.status}: {e}", status=e.status) from e
                if attempt == self._max_attempts:
                    raise RateLimitError(
                        f"GitHub rate limit still exceeded after {self._max_attempts} attempt(s) for {ref}."
                    ) from e
                delay = self._delay(attempt)
                logger.warning(
                    "Rate limited by GitHub (attempt %d/%d); retrying in %.1fs.",
                    attempt,
                    self._max_attempts,
                    delay,
                )
                self._sleep(delay)
            except requests.RequestException as e:
                raise HostError(f"Request to {ref.host} failed for {ref}: {e}") from e
        raise AssertionError("unreachable")  # pragma: no cover

    # ------------------------------------------------------------------
    # Mapping PyGithub objects to models
    # ------------------------------------------------------------------

    def _metadata(self, ref: PullRequestRef) -> PullRequestMetadata:
        pr = self._pull(ref)
        state = "merged" if pr.merged else pr.state
        return PullRequestMetadata(
            title=pr.title or "",
            author=_login(pr.user),
            state=state,
            base_branch=pr.base.ref,
            head_branch=pr.head.ref,
            created_at=pr.created_at,
            updated_at=pr.updated_at,
            labels=frozenset(label.name for label in pr.labels),
            url=pr.html_url or "",
            body=pr.body or "",
            draft=bool(pr.draft),
        )

    def _comments(self, ref: PullRequestRef) -> list[Comment]:
        pr = self._pull(ref)
        comments: list[Comment] = []

        for c in pr.get_issue_comments():
            comments.append(Comment(author=_login(c.user), body=c.body or "", created_at=c.created_at))

        if self._include_reviews:
            for r in pr.get_reviews():
                # Reviews without a summary body only exist to group inline comments.
                if not (r.body or "").strip():
                    continue
                comments.append(
                    Comment(
                        author=_login(r.user),
                        body=r.body,
                        created_at=r.submitted_at or _EPOCH,
                        kind="review",
                        state=r.state,
                    )
                )

        for c in pr.get_review_comments():
            comments.append(
                Comment(
                    author=_login(c.user),
                    body=c.body or "",
                    created_at=c.created_at,
                    kind="review_comment",
                    path=c.path,
                    line=c.line if c.line is not None else c.original_line,
                )
            )

        comments.sort(key=lambda c: to_utc(c.created_at))
        return comments

    def _diff(self, ref: PullRequestRef) -> list[DiffHunk]:
        pr = self._pull(ref)
        hunks: list[DiffHunk] = []
        for f in pr.get_files():
            if is_excluded(f.filename, self._exclude):
                logger.debug("Excluding %s from diff", f.filename)
                continue
            hunks.extend(parse_patch(f.filename, f.patch, status=f.status))
        return hunks

