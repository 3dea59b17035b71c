"""
Git client infrastructure for grelly.

Provides a clean abstraction over git command execution.
All git operations go through this client, making them:
- Easy to mock for testing
- Consistent in error handling
- Isolated from business logic
"""

import subprocess
from dataclasses import dataclass
from typing import Dict, List, Optional, Set, Tuple
import logging

from ..domain.commit import Commit
from ..exit_codes import RepositoryAccessError

logger = logging.getLogger(__name__)

# Field and record separators for git log output
_FS = '\x1f'
_RS = '\x1e'
LOG_FORMAT = f'%H{_FS}%P{_FS}%B{_RS}'
TAG_REF_FORMAT = f'%(refname){_FS}%(objectname){_FS}%(*objectname)'


@dataclass
class GitResult:
    """Result of one git invocation."""
    stdout: str
    stderr: str
    returncode: int

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class GitClient:
    """
    Abstraction over git commands.

    Read methods raise RepositoryAccessError when git fails in a way that
    means the repository cannot be read; "nothing there" answers (detached
    HEAD, missing tag) are returned as None/False instead.

    Example:
        client = GitClient()
        head = client.head_commit("/path/to/repo")
        commits = client.log_graph("/path/to/repo", head)
    """

    def __init__(self, timeout: int = 30):
        """
        Initialize GitClient.

        Args:
            timeout: Command timeout in seconds (default: 30)
        """
        self.timeout = timeout

    def _run(self, args: List[str], cwd: str, check: bool = False) -> GitResult:
        """
        Run a git command.

        Args:
            args: Git arguments (e.g., ['rev-parse', 'HEAD'])
            cwd: Working directory
            check: Raise RepositoryAccessError on non-zero exit

        Returns:
            GitResult with stdout, stderr and return code
        """
        cmd = ['git'] + args
        try:
            result = subprocess.run(
                cmd,
                cwd=cwd,
                capture_output=True,
                text=True,
                timeout=self.timeout
            )
        except subprocess.TimeoutExpired as e:
            logger.warning(f"Git command timed out: {' '.join(cmd)}")
            raise RepositoryAccessError(f"git {args[0]} timed out after {self.timeout}s") from e
        except FileNotFoundError as e:
            raise RepositoryAccessError("git executable not found") from e
        except OSError as e:
            raise RepositoryAccessError(f"Cannot run git in {cwd}: {e}") from e

        logger.debug(f"git {' '.join(args)} -> {result.returncode}")
        git_result = GitResult(result.stdout or '', result.stderr or '', result.returncode)

        if check and not git_result.ok:
            raise RepositoryAccessError(f"git {args[0]} failed in {cwd}", git_result.stderr)

        return git_result

    def toplevel(self, path: str) -> str:
        """Root of the work tree containing path."""
        result = self._run(['rev-parse', '--show-toplevel'], cwd=path)
        if not result.ok:
            raise RepositoryAccessError(f"Not a git work tree: {path}", result.stderr)
        return result.stdout.strip()

    def head_commit(self, path: str) -> str:
        """Full id of the commit HEAD points at."""
        result = self._run(['rev-parse', '--verify', '-q', 'HEAD^{commit}'], cwd=path)
        if not result.ok or not result.stdout.strip():
            raise RepositoryAccessError(f"Repository has no commits: {path}")
        return result.stdout.strip()

    def current_branch(self, path: str) -> Optional[str]:
        """Get current branch name, None on a detached HEAD."""
        result = self._run(['symbolic-ref', '--short', '-q', 'HEAD'], cwd=path)
        if result.ok and result.stdout.strip():
            return result.stdout.strip()
        return None

    def is_shallow(self, path: str) -> bool:
        result = self._run(['rev-parse', '--is-shallow-repository'], cwd=path)
        return result.ok and result.stdout.strip() == 'true'

    def log_graph(self, path: str, rev: str) -> List[Commit]:
        """
        Read every commit reachable from rev, parents and messages included.

        Commits come back in topological order (children before parents),
        newest first.
        """
        result = self._run(['log', '--topo-order', f'--format={LOG_FORMAT}', rev, '--'], cwd=path, check=True)

        commits = []
        for record in result.stdout.split(_RS):
            record = record.lstrip('\n')
            if not record:
                continue

            parts = record.split(_FS, 2)
            if len(parts) < 3:
                logger.debug(f"Skipping malformed log record: {record[:40]!r}")
                continue

            commit_id, parents, message = parts
            commits.append(Commit(
                id=commit_id.strip(),
                parents=tuple(parents.split()),
                message=message.rstrip('\n')
            ))

        return commits

    def all_subjects(self, path: str) -> List[Tuple[str, str]]:
        """(commit id, subject) for every commit on any branch, tag or remote ref."""
        result = self._run(['log', '--all', f'--format=%H{_FS}%s'], cwd=path, check=True)

        subjects = []
        for line in result.stdout.splitlines():
            commit_id, sep, subject = line.partition(_FS)
            if sep:
                subjects.append((commit_id, subject))
        return subjects

    def tag_refs(self, path: str) -> Dict[str, Set[str]]:
        """
        Map commit id -> names of the tags pointing at it.

        Annotated tags are peeled to the commit they annotate.
        """
        result = self._run(['for-each-ref', f'--format={TAG_REF_FORMAT}', 'refs/tags'], cwd=path, check=True)

        tags: Dict[str, Set[str]] = {}
        for line in result.stdout.splitlines():
            parts = line.split(_FS)
            if len(parts) != 3:
                continue

            refname, target, peeled = parts
            name = refname[len('refs/tags/'):] if refname.startswith('refs/tags/') else refname
            commit_id = peeled.strip() or target.strip()
            tags.setdefault(commit_id, set()).add(name)

        return tags

    def tag_exists(self, path: str, name: str) -> bool:
        result = self._run(['rev-parse', '-q', '--verify', f'refs/tags/{name}'], cwd=path)
        return result.ok

    def create_tag(self, path: str, name: str, target: str, message: str) -> GitResult:
        """Create an annotated tag. Returns the raw result; callers map failures."""
        return self._run(['tag', '-a', name, '-m', message, target], cwd=path)

    def commit_empty(self, path: str, message: str) -> GitResult:
        """Create a commit with no changes on the current branch."""
        return self._run(['commit', '--allow-empty', '--no-verify', '-m', message], cwd=path)
