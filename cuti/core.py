"""
Core cuti functionality - error types and the Git worktree adapter.
"""

import logging
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

import git
from git import Repo

from .utils.gitignore import copy_ignored_files, list_ignored_files

logger = logging.getLogger(__name__)


class CutiError(Exception):
    """Base exception for cuti operations."""
    pass


class UsageError(CutiError):
    """Invalid combination of command-line arguments."""
    pass


class NotAGitRepositoryError(CutiError):
    pass


class WorktreeError(CutiError):
    """A git worktree command failed."""
    pass


class WorktreeNotFoundError(CutiError):
    pass


class NoWorktreesError(CutiError):
    pass


class SelectionCancelledError(CutiError):
    """The user aborted an interactive selection."""
    pass


class ConfigError(CutiError):
    pass


class HookError(CutiError):
    """A hook failed while failOnError is enabled."""
    pass


@dataclass
class WorktreeInfo:
    """One record of `git worktree list --porcelain`."""
    path: str
    branch: Optional[str] = None
    commit: Optional[str] = None


@dataclass
class WorktreeResult:
    """Outcome of a worktree creation."""
    path: str
    branch: str
    repo_root: str
    repo_name: str
    warnings: List[str] = field(default_factory=list)


def parse_worktree_porcelain(output: str) -> List[WorktreeInfo]:
    """Parse porcelain worktree listing into WorktreeInfo records.

    A record starts at a ``worktree`` line and ends at a blank line or at the
    next ``worktree`` line.
    """
    worktrees = []
    current = None

    for line in output.split('\n'):
        line = line.rstrip('\r')
        if line.startswith('worktree '):
            if current:
                worktrees.append(current)
            current = WorktreeInfo(path=line[9:])
        elif current is None:
            continue
        elif line.startswith('HEAD '):
            current.commit = line[5:]
        elif line.startswith('branch '):
            current.branch = line[7:].replace('refs/heads/', '', 1)
        elif line == '':
            worktrees.append(current)
            current = None

    if current:
        worktrees.append(current)

    return worktrees


class CutiRepo:
    """Wrapper around a Git repository for worktree lifecycle operations."""

    def __init__(self, config, repo_path: Optional[str] = None, selector=None):
        """Initialize with a config store, repository path and selector.

        The path defaults to the current directory. ``selector`` is used when
        a worktree must be chosen interactively.
        """
        self.repo_path = Path(repo_path) if repo_path else Path.cwd()
        self.config = config
        self.selector = selector

    def _git(self, *args: str, cwd: Optional[Path] = None) -> subprocess.CompletedProcess:
        return subprocess.run(
            ['git', *args],
            cwd=cwd or self.repo_path,
            capture_output=True,
            text=True
        )

    def _open_repo(self) -> Repo:
        try:
            return Repo(self.repo_path, search_parent_directories=True)
        except (git.exc.InvalidGitRepositoryError, git.exc.NoSuchPathError):
            raise NotAGitRepositoryError("Not in a git repository")

    def is_git_repository(self) -> bool:
        """Check whether the repository path lies inside a Git work tree."""
        try:
            self._open_repo()
            return True
        except NotAGitRepositoryError:
            return False

    def validate_repository(self) -> None:
        self._open_repo()

    def get_repo_root(self) -> Path:
        """Resolve the top-level directory of the repository."""
        working_tree_dir = self._open_repo().working_tree_dir
        if not working_tree_dir:
            raise NotAGitRepositoryError("Not in a git repository")
        return Path(working_tree_dir)

    def branch_exists(self, branch: str) -> bool:
        result = self._git('rev-parse', '--verify', '--quiet', f'refs/heads/{branch}')
        return result.returncode == 0

    def list_worktrees(self) -> List[WorktreeInfo]:
        """List all worktrees of this repository."""
        try:
            result = self._git('worktree', 'list', '--porcelain')
        except OSError as e:
            logger.debug("git worktree list could not run: %s", e)
            raise WorktreeError("Failed to list worktrees")

        if result.returncode != 0:
            logger.debug("git worktree list failed: %s", result.stderr.strip())
            raise WorktreeError("Failed to list worktrees")

        return parse_worktree_porcelain(result.stdout)

    def default_worktree_path(self, repo_root: Path, branch: str) -> Path:
        """Default location: ``<root>/../<name>_worktrees/<branch>``."""
        return repo_root.parent / f"{repo_root.name}_worktrees" / branch

    def create_worktree(
        self,
        branch: str,
        path: Optional[str] = None,
        force: bool = False
    ) -> WorktreeResult:
        """Create a worktree for ``branch``, creating the branch if needed."""
        self.validate_repository()

        repo_root = self.get_repo_root()
        repo_name = repo_root.name or 'repo'

        branch_prefix = self.config.get('branchPrefix') if self.config else None
        final_branch = f"{branch_prefix}{branch}" if branch_prefix else branch

        # The directory keeps the unprefixed name.
        worktree_path = Path(path) if path else self.default_worktree_path(repo_root, branch)

        args = ['worktree', 'add', str(worktree_path)]
        if self.branch_exists(final_branch):
            logger.debug("Branch %s exists", final_branch)
            args.append(final_branch)
        else:
            logger.debug("Branch %s does not exist, will create it", final_branch)
            args.extend(['-b', final_branch])
        if force:
            args.append('--force')

        print(f"Creating worktree at: {worktree_path}")
        logger.debug("Executing: git %s", ' '.join(args))

        result = self._git(*args)
        if result.returncode != 0:
            raise WorktreeError(f"Failed to create worktree: {result.stderr.strip()}")

        print("✅ Worktree created successfully!")

        warnings = self._propagate_ignored_files(repo_root, worktree_path)

        return WorktreeResult(
            path=str(worktree_path),
            branch=final_branch,
            repo_root=str(repo_root),
            repo_name=repo_name,
            warnings=warnings
        )

    def _propagate_ignored_files(self, repo_root: Path, worktree_path: Path) -> List[str]:
        print("Copying ignored files to new worktree...")
        try:
            entries = list_ignored_files(repo_root)
            if not entries:
                logger.debug("No ignored files to copy")
                return []
            copied = copy_ignored_files(repo_root, worktree_path, entries)
            print(f"✅ Copied {copied} ignored files/directories")
            return []
        except (OSError, subprocess.SubprocessError) as e:
            message = f"Failed to copy ignored files (this is non-fatal): {e}"
            print(f"⚠️  {message}")
            logger.debug("Ignored-file propagation error", exc_info=True)
            return [message]

    def select_worktree(self) -> WorktreeInfo:
        """Ask the selector to pick one of the removable worktrees."""
        # The first porcelain record is always the main worktree.
        removable = [wt for wt in self.list_worktrees()[1:] if wt.branch]
        if not removable:
            raise NoWorktreesError("No worktrees available to remove")
        if self.selector is None:
            raise SelectionCancelledError("Selection cancelled")

        choices = [(f"{wt.branch:<30} {wt.path}", wt) for wt in removable]
        selected = self.selector.select("Select a worktree to remove:", choices)
        if selected is None:
            raise SelectionCancelledError("Selection cancelled")
        return selected

    def remove_worktree(self, branch: Optional[str] = None, force: bool = False) -> WorktreeInfo:
        """Remove the worktree checked out on ``branch``.

        Without a branch the user picks one interactively. Removal always
        targets the resolved path.
        """
        self.validate_repository()

        if not branch:
            branch = self.select_worktree().branch

        # Re-query so a caller-supplied branch is checked against the live list.
        target = next((wt for wt in self.list_worktrees() if wt.branch == branch), None)
        if target is None:
            raise WorktreeNotFoundError(f"No worktree found for branch: {branch}")

        print(f"Removing worktree for branch: {branch}")
        logger.debug("Worktree path: %s", target.path)

        args = ['worktree', 'remove', target.path]
        if force:
            args.append('--force')

        result = self._git(*args)
        if result.returncode != 0:
            raise WorktreeError(f"Failed to remove worktree: {result.stderr.strip()}")

        print("✅ Worktree removed successfully!")
        return target
