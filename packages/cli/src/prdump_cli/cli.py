"""CLI entry point for pr-dump.

  pr-dump <reference> [--output PATH]   dump a pull request's metadata, comments and diff
  pr-dump --version                     print the version; no network access
"""

from __future__ import annotations

import importlib.metadata
import logging
import sys

import click
from rich.console import Console
from rich.markup import escape

from prdump_core.errors import ArgError, PrDumpError

err_console = Console(stderr=True)

logger = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
        force=True,
    )


def _build_client(config: dict):
    """Build the host client with the default credential chain (env vars, then gh CLI)."""
    from prdump_cli.auth import default_credentials
    from prdump_core.gh.pull_request import GitHubClient

    return GitHubClient.from_config(default_credentials(), config)


def dump(reference: str, repo: str | None, output: str | None, config_path: str) -> None:
    """Resolve → fetch → assemble → write. Raises PrDumpError on any failure."""
    from prdump_core.assembler import assemble
    from prdump_core.config import load_config
    from prdump_core.gh.ref import parse_ref
    from prdump_core.output import write_atomic, write_stream

    config = load_config(config_path)
    ref = parse_ref(reference, default_repo=repo)
    client = _build_client(config)

    metadata = client.fetch_metadata(ref)
    comments = client.fetch_comments(ref)
    hunks = client.fetch_diff(ref)

    document = assemble(metadata, comments, hunks)
    logger.info("Assembled dump for %s", ref)

    if output is None or output == "-":
        write_stream(sys.stdout, document.text)
    else:
        write_atomic(output, document.text)


@click.command("pr-dump")
@click.version_option(
    version=importlib.metadata.version("pr-dump"),
    prog_name="pr-dump",
    message="%(prog)s version %(version)s",
)
@click.argument("reference", required=False)
@click.option("--repo", default=None, help="Repository (owner/name) for a bare PR number.")
@click.option(
    "--output",
    "-o",
    default=None,
    type=click.Path(dir_okay=False),
    help="Write the dump to this file instead of standard output.",
)
@click.option(
    "--config",
    "config_path",
    default=".pr-dump.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="PR_DUMP_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Log progress to standard error.")
def main(reference: str | None, repo: str | None, output: str | None, config_path: str, verbose: bool):
    """Dump GitHub PR context (metadata, comments, diffs) for LLM review.

    REFERENCE is a pull request URL, owner/repo#N, or a bare number N
    (the repository then comes from --repo or the git 'origin' remote).

    \b
    Authentication:
      GITHUB_TOKEN / GH_TOKEN   GitHub token (or use `gh auth login`)
    """
    _configure_logging(verbose)

    try:
        if not reference:
            raise ArgError("Missing pull request reference. Try 'pr-dump --help'.")
        dump(reference, repo, output, config_path)
    except PrDumpError as e:
        err_console.print(f"[red]Error:[/red] {escape(str(e))}", soft_wrap=True)
        sys.exit(e.exit_code)
