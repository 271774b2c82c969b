"""Writing the dump to its destination in one piece."""

from __future__ import annotations

import logging
import os
import stat
import tempfile
from pathlib import Path
from typing import TextIO

from prdump_core.errors import WriteError

logger = logging.getLogger(__name__)


def _target_mode(target: Path) -> int:
    """Mode the finished file should have: the existing file's, else what open() would give."""
    try:
        return stat.S_IMODE(os.stat(target).st_mode)
    except FileNotFoundError:
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask


def write_atomic(path: str | os.PathLike, text: str) -> None:
    """Write ``text`` to ``path`` so readers see either the old file or the whole new one.

    The content goes to a temp file in the destination directory first and is
    then renamed over the target. If anything fails, or the process is
    interrupted, the temp file is removed and the destination is untouched.
    """
    target = Path(path)
    try:
        fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".tmp", dir=target.parent)
    except OSError as e:
        raise WriteError(f"Cannot write to {target}: {e.strerror or e}") from e

    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        # mkstemp creates 0600 files.
        os.chmod(tmp_name, _target_mode(target))
        os.replace(tmp_name, target)
    except BaseException as e:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        if isinstance(e, OSError):
            raise WriteError(f"Cannot write to {target}: {e.strerror or e}") from e
        raise
    logger.info("Wrote %d characters to %s", len(text), target)


def write_stream(stream: TextIO, text: str) -> None:
    """Emit ``text`` with a single write call."""
    try:
        stream.write(text)
        stream.flush()
    except OSError as e:
        raise WriteError(f"Cannot write to standard output: {e.strerror or e}") from e
