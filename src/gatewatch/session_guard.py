"""
Session log bloat guard.

The gateway appends one record per turn to a session log and eventually
crashes on oversized sessions. The guardian finds the largest log and, past
the critical threshold, rewrites it as head + marker + tail. The rewrite
goes through a temp file and ``os.replace`` because the gateway may be
reading or appending concurrently; lines appended between our read and the
replace are lost.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path

from gatewatch.config.watchdog import SessionLogConfig
from gatewatch.notifier import AlertSeverity, Notifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TruncationResult:
    path: Path
    original_lines: int
    new_lines: int

    @property
    def truncated(self) -> bool:
        return self.new_lines != self.original_lines


def count_lines(path: Path) -> int:
    with open(path, "rb") as f:
        return sum(1 for _ in f)


def truncate_session_log(path: Path, head: int, tail: int, marker: str) -> TruncationResult:
    """
    Replace a session log with its first ``head`` lines, a marker record and
    its last ``tail`` lines.

    Args:
        path: Session log to truncate
        head: Leading lines to keep
        tail: Trailing lines to keep
        marker: Single-line record noting the truncation

    Returns:
        TruncationResult with line counts before and after

    Raises:
        OSError: If the log cannot be read or replaced
    """
    with open(path, "rb") as f:
        lines = f.readlines()

    original = len(lines)
    if original <= head + tail:
        return TruncationResult(path, original, original)

    kept_head = lines[:head]
    kept_tail = lines[-tail:] if tail else []
    if kept_head and not kept_head[-1].endswith(b"\n"):
        kept_head[-1] += b"\n"

    fd, temp_path = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.writelines(kept_head)
            f.write(marker.encode("utf-8") + b"\n")
            f.writelines(kept_tail)
            f.flush()
            os.fsync(f.fileno())
        shutil.copymode(path, temp_path)
        os.replace(temp_path, path)
    except Exception:
        if os.path.exists(temp_path):
            os.unlink(temp_path)
        raise

    return TruncationResult(path, original, len(kept_head) + 1 + len(kept_tail))


class SessionLogGuardian:
    """Sweeps the sessions directory and truncates the largest offender."""

    def __init__(self, config: SessionLogConfig, notifier: Notifier):
        self.config = config
        self.notifier = notifier

    @property
    def directory(self) -> Path:
        return Path(self.config.directory).expanduser()

    def find_largest(self) -> tuple[Path, int] | None:
        """
        Count lines of every session log.

        Returns:
            (path, line_count) of the largest log, or None when there are none
        """
        if not self.directory.is_dir():
            return None

        largest: tuple[Path, int] | None = None
        for path in sorted(self.directory.glob(self.config.pattern)):
            if not path.is_file():
                continue
            try:
                lines = count_lines(path)
            except OSError as e:
                logger.warning(f"Skipping unreadable session log {path.name}: {e}")
                continue
            if largest is None or lines > largest[1]:
                largest = (path, lines)
        return largest

    def sweep(self) -> TruncationResult | None:
        """
        Apply the bloat policy to the largest session log.

        Returns:
            TruncationResult if a log was truncated, else None
        """
        largest = self.find_largest()
        if largest is None:
            return None

        path, lines = largest
        if lines > self.config.crit_lines:
            logger.error(
                f"Session file {path.name} at {lines} lines "
                f"(threshold: {self.config.crit_lines})"
            )
            result = truncate_session_log(
                path, self.config.head_lines, self.config.tail_lines, self.config.marker
            )
            if not result.truncated:
                logger.info(f"Session file {path.name} already within head + tail, left as is")
                return None
            logger.info(f"Truncated {path.name} from {result.original_lines} to {result.new_lines} lines")
            self.notifier.notify(
                f"session bloat critical: {path.name} at {result.original_lines} lines. "
                f"truncated to {result.new_lines} lines to prevent a crash.",
                AlertSeverity.WARNING,
            )
            return result

        if lines >= self.config.warn_lines:
            logger.warning(f"Session file {path.name} at {lines} lines")
        return None
