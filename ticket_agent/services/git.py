"""Git service for repository operations."""

import logging
import re
import subprocess
from pathlib import Path
from urllib.parse import quote, urlencode

from ticket_agent.core.errors import PreconditionError, TransportError

logger = logging.getLogger(__name__)

# Matches HTTPS and SSH remotes:
# - https://bitbucket.org/workspace/repo.git
# - https://user@bitbucket.org/workspace/repo.git
# - git@bitbucket.org:workspace/repo.git
# - ssh://git@github.com/org/repo.git
REMOTE_URL_PATTERN = re.compile(
    r"^(?:https?://(?:[^@/]+@)?|ssh://(?:[^@/]+@)?|[^@/]+@)"
    r"(?P<host>github\.com|bitbucket\.org)[:/]"
    r"(?P<owner>[^/]+)/(?P<repo>[^/]+?)(?:\.git)?/?$"
)


class GitError(TransportError):
    """Raised when git operations fail."""

    def __init__(
        self,
        message: str,
        command: str | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message, cause)
        self.command = command


def _require(value: str | Path | None, what: str, command: str) -> None:
    if not value or not str(value).strip():
        raise PreconditionError(f"{what} cannot be empty (git {command})")


class GitService:
    """Service for git-related operations."""

    @staticmethod
    def run_git(args: list[str], cwd: str | Path | None = None) -> str:
        """Run a git command and return its stripped stdout.

        Raises:
            GitError: If git is missing or exits non-zero
        """
        command = "git " + " ".join(args)
        logger.debug(f"Running: {command}{f' in {cwd}' if cwd else ''}")

        try:
            result = subprocess.run(
                ["git", *args],
                cwd=cwd,
                capture_output=True,
                text=True,
                check=True,
            )
        except subprocess.CalledProcessError as e:
            stderr = (e.stderr or "").strip()
            raise GitError(
                f"{command} exited with {e.returncode}: {stderr}", command, e
            ) from e
        except OSError as e:
            raise GitError(f"Failed to execute {command}: {e}", command, e) from e

        return result.stdout.strip()

    @staticmethod
    def clone(repository_url: str, target_dir: str | Path) -> None:
        _require(repository_url, "Repository URL", "clone")
        _require(target_dir, "Target directory", "clone")

        GitService.run_git(["clone", repository_url, str(target_dir)])

    @staticmethod
    def create_branch(work_dir: str | Path, branch_name: str) -> None:
        """Create and check out a new branch from the current HEAD."""
        _require(work_dir, "Working directory", "checkout -b")
        _require(branch_name, "Branch name", "checkout -b")

        GitService.run_git(["checkout", "-b", branch_name], cwd=work_dir)

    @staticmethod
    def get_remote_url(work_dir: str | Path, remote: str = "origin") -> str:
        _require(work_dir, "Working directory", "remote get-url")

        return GitService.run_git(["remote", "get-url", remote], cwd=work_dir)

    @staticmethod
    def parse_remote_url(remote_url: str) -> tuple[str, str, str]:
        """Split a remote URL into (host, owner, repo).

        Raises:
            PreconditionError: If the URL is not a GitHub or Bitbucket remote
        """
        match = REMOTE_URL_PATTERN.match(remote_url.strip())
        if not match:
            raise PreconditionError(
                f"Could not parse repository from remote URL: {remote_url}"
            )
        return match.group("host"), match.group("owner"), match.group("repo")

    @staticmethod
    def build_pull_request_url(
        remote_url: str, branch_name: str, base_branch: str
    ) -> str:
        """Build the web URL that opens a new pull request for ``branch_name``.

        Handles both HTTPS and SSH remotes on Bitbucket Cloud and GitHub.
        """
        _require(branch_name, "Branch name", "pull request")
        _require(base_branch, "Base branch", "pull request")

        host, owner, repo = GitService.parse_remote_url(remote_url)

        if host == "bitbucket.org":
            query = urlencode({"source": branch_name, "dest": base_branch})
            return f"https://bitbucket.org/{owner}/{repo}/pull-requests/new?{query}"

        compare = f"{quote(base_branch, safe='/')}...{quote(branch_name, safe='/')}"
        return f"https://github.com/{owner}/{repo}/compare/{compare}?expand=1"
