"""
Changelog writer for grelly.

Appends one entry per release: a heading with the version and date, then
one line per commit.
"""

import logging
from datetime import date
from pathlib import Path
from typing import Callable, Optional, Sequence

from ..domain.commit import Commit
from ..domain.version import SemVer
from ..exit_codes import ChangelogIOError

logger = logging.getLogger(__name__)


class ChangelogWriter:
    """
    Appends release entries to a changelog file.

    Example:
        writer = ChangelogWriter()
        writer.append(SemVer(1, 3, 0), commits, "CHANGELOG.md")

    Produces:
        ## 1.3.0 (2024-05-01)

        - 3f2a9c1 Fix parser crash on empty input
        - 8b01d4e Add --json flag
    """

    def __init__(self, today: Optional[Callable[[], date]] = None):
        """
        Initialize ChangelogWriter.

        Args:
            today: Date provider for entry headings (default: date.today)
        """
        self.today = today or date.today

    def format_entry(self, version: SemVer, commits: Sequence[Commit]) -> str:
        lines = [f"## {version} ({self.today().isoformat()})", ""]
        if commits:
            lines.extend(f"- {commit.short_id} {commit.subject}" for commit in commits)
        else:
            lines.append("- No changes recorded.")
        return '\n'.join(lines) + '\n'

    def append(self, version: SemVer, commits: Sequence[Commit], path: str) -> None:
        """
        Append an entry for version to the changelog at path.

        Raises:
            ChangelogIOError: If the file cannot be written
        """
        changelog = Path(path)
        entry = self.format_entry(version, commits)

        try:
            separator = ''
            if changelog.exists() and changelog.stat().st_size > 0:
                with open(changelog, 'rb') as f:
                    f.seek(-1, 2)
                    separator = '\n' if f.read(1) == b'\n' else '\n\n'
            with open(changelog, 'a', encoding='utf-8') as f:
                f.write(separator + entry)
        except OSError as e:
            raise ChangelogIOError(f"Could not write changelog {changelog}: {e}", path=str(changelog)) from e

        logger.info(f"Appended {version} ({len(commits)} commits) to {changelog}")
