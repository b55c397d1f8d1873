"""
Commands for creating, removing, listing and selecting worktrees.
"""

import os
import sys
from dataclasses import replace
from typing import Callable, Optional

from cuti.core import (
    CutiError,
    CutiRepo,
    SelectionCancelledError,
    UsageError,
    WorktreeNotFoundError,
    WorktreeResult,
)
from cuti.hooks import HookArgs, HookContext, HookManager
from cuti.utils.jira import JiraClient, ensure_jira_config, preprocess_jira_issue
from cuti.utils.shell import SHELL_CD_ENV

COMMAND = 'worktree'


def _run_guarded(hooks: HookManager, lifecycle: str, context: HookContext, operation: Callable):
    """Run ``operation`` between the pre and post hooks of ``lifecycle``.

    When the operation fails the post hooks still run, with the error set.
    """
    hooks.run_hooks(f"pre-{lifecycle}", context)
    post_context = replace(context, phase='post')
    try:
        result = operation()
    except CutiError as e:
        hooks.run_hooks(f"post-{lifecycle}", replace(post_context, error=str(e)))
        raise
    hooks.run_hooks(f"post-{lifecycle}", replace(post_context, result=result))
    return result


def add_worktree(
    repo: CutiRepo,
    hooks: HookManager,
    config,
    branch: str,
    path: Optional[str] = None,
    force: bool = False,
    jira: bool = False,
    assign: bool = True,
    transition: bool = True,
    name_only: bool = False,
    use_claude: bool = False,
    client_factory: Callable = JiraClient.from_config
) -> int:
    """Create a worktree, optionally naming the branch after a Jira issue."""
    if not branch:
        raise UsageError("Branch name is required")
    if name_only and not jira:
        raise UsageError("--name-only can only be used with --jira flag")

    if jira:
        jira_config = ensure_jira_config(config)
        client = client_factory(jira_config)
        try:
            issue = preprocess_jira_issue(
                branch,
                client,
                assign=assign and not name_only,
                transition=transition and not name_only,
                use_claude=use_claude
            )
        finally:
            client.close()
        branch = issue.branch_name

        if name_only:
            print(branch)
            return 0

    context = HookContext(
        command=COMMAND,
        subcommand='add',
        phase='pre',
        args=HookArgs(
            branch=branch,
            path=path,
            force=force,
            jira=jira,
            assign=assign,
            transition=transition,
            name_only=name_only
        )
    )

    result = _run_guarded(
        hooks, 'create', context,
        lambda: repo.create_worktree(branch, path=path, force=force)
    )

    print("\nTo navigate to your new worktree:")
    print(f'  cd "{result.path}"')
    return 0


def remove_worktree(
    repo: CutiRepo,
    hooks: HookManager,
    branch: Optional[str] = None,
    force: bool = False
) -> int:
    """Remove the worktree of ``branch``, asking which one when omitted."""
    repo.validate_repository()
    if not branch:
        branch = repo.select_worktree().branch

    context = HookContext(
        command=COMMAND,
        subcommand='remove',
        phase='pre',
        args=HookArgs(branch=branch, force=force)
    )

    def _remove() -> WorktreeResult:
        removed = repo.remove_worktree(branch, force=force)
        repo_root = repo.get_repo_root()
        return WorktreeResult(
            path=removed.path,
            branch=removed.branch or branch,
            repo_root=str(repo_root),
            repo_name=repo_root.name
        )

    _run_guarded(hooks, 'remove', context, _remove)
    return 0


def list_worktrees(repo: CutiRepo) -> int:
    """Print every worktree with its branch."""
    worktrees = repo.list_worktrees()

    if not worktrees:
        print("No worktrees found")
        return 0

    print("\nWorktrees:")
    for wt in worktrees:
        branch = wt.branch or '(detached HEAD)'
        print(f"  {branch:<30} {wt.path}")

    return 0


def select_worktree_path(repo: CutiRepo, selector) -> int:
    """Write the chosen worktree path, and nothing else, to stdout."""
    worktrees = repo.list_worktrees()

    if not worktrees:
        raise WorktreeNotFoundError("No worktrees found")

    if len(worktrees) == 1:
        selected = worktrees[0].path
    else:
        choices = [(f"{(wt.branch or 'main'):<30} {wt.path}", wt.path) for wt in worktrees]
        selected = selector.select("Select a worktree to navigate to:", choices)
        if selected is None:
            raise SelectionCancelledError("Selection cancelled")

    sys.stdout.write(selected)
    sys.stdout.flush()
    return 0


def handle_worktree_command(repo: CutiRepo, hooks: HookManager, config, selector, args) -> int:
    """Dispatch ``cuti worktree`` subcommands."""
    command = args.worktree_command

    if command == 'add':
        return add_worktree(
            repo, hooks, config, args.branch,
            path=args.path,
            force=args.force,
            jira=args.jira,
            assign=args.assign,
            transition=args.transition,
            name_only=args.name_only,
            use_claude=args.claude
        )
    elif command in ('remove', 'rm'):
        return remove_worktree(repo, hooks, args.branch, force=args.force)
    elif command in ('list', 'ls'):
        return list_worktrees(repo)
    elif command is None:
        if os.environ.get(SHELL_CD_ENV) == '1':
            return select_worktree_path(repo, selector)
        return list_worktrees(repo)
    else:
        raise UsageError(f"Worktree command '{command}' not yet implemented")
