"""
User hook discovery and execution around worktree lifecycle phases.

Hooks are executable files in ``.cuti/hooks`` named after the hook type
(``post-create``) or prefixed by it (``post-create.10-install``). They receive
the invocation context through ``CUTI_HOOK_*`` environment variables.
"""

import json
import logging
import os
import subprocess
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from .core import HookError, WorktreeResult

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 30000
TIMEOUT_EXIT_CODE = 124
NOT_EXECUTABLE_EXIT_CODE = 126


@dataclass(frozen=True)
class HookArgs:
    branch: Optional[str] = None
    path: Optional[str] = None
    force: Optional[bool] = None
    jira: Optional[bool] = None
    assign: Optional[bool] = None
    transition: Optional[bool] = None
    name_only: Optional[bool] = None


@dataclass(frozen=True)
class HookContext:
    """Immutable snapshot of the command a hook runs for."""
    command: str
    subcommand: str
    phase: str
    args: HookArgs = field(default_factory=HookArgs)
    result: Optional[WorktreeResult] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        args = {
            'branch': self.args.branch,
            'path': self.args.path,
            'force': self.args.force,
            'jira': self.args.jira,
            'assign': self.args.assign,
            'transition': self.args.transition,
            'nameOnly': self.args.name_only,
        }
        data = {
            'command': self.command,
            'subcommand': self.subcommand,
            'phase': self.phase,
            'args': {k: v for k, v in args.items() if v is not None},
        }
        if self.result is not None:
            data['result'] = {
                'path': self.result.path,
                'branch': self.result.branch,
                'repoRoot': self.result.repo_root,
                'repoName': self.result.repo_name,
            }
        if self.error is not None:
            data['error'] = self.error
        return data

    def to_env(self) -> Dict[str, str]:
        """Flatten the context into ``CUTI_HOOK_*`` variables."""
        env = {
            'CUTI_HOOK_COMMAND': self.command,
            'CUTI_HOOK_SUBCOMMAND': self.subcommand,
            'CUTI_HOOK_PHASE': self.phase,
            'CUTI_HOOK_BRANCH': self.args.branch or '',
            'CUTI_HOOK_PATH': self.args.path or '',
            'CUTI_HOOK_FORCE': 'true' if self.args.force else 'false',
            'CUTI_HOOK_JIRA': 'true' if self.args.jira else 'false',
            'CUTI_HOOK_CONTEXT': json.dumps(self.to_dict()),
        }
        if self.result is not None:
            env['CUTI_HOOK_RESULT_PATH'] = self.result.path
            env['CUTI_HOOK_RESULT_BRANCH'] = self.result.branch
            env['CUTI_HOOK_RESULT_REPO_ROOT'] = self.result.repo_root
            env['CUTI_HOOK_RESULT_REPO_NAME'] = self.result.repo_name
        return env


@dataclass
class HookConfig:
    enabled: bool = True
    fail_on_error: bool = False
    timeout: int = DEFAULT_TIMEOUT_MS

    @classmethod
    def from_mapping(cls, values: Optional[Dict[str, Any]]) -> 'HookConfig':
        """Overlay the ``hooks`` config object onto the defaults."""
        config = cls()
        if not isinstance(values, dict):
            return config
        if 'enabled' in values:
            config.enabled = bool(values['enabled'])
        if 'failOnError' in values:
            config.fail_on_error = bool(values['failOnError'])
        if 'timeout' in values:
            try:
                config.timeout = int(values['timeout'])
            except (TypeError, ValueError):
                logger.debug("Ignoring invalid hooks.timeout: %r", values['timeout'])
        return config


@dataclass
class HookExecutionResult:
    success: bool
    output: str = ''
    error: Optional[str] = None
    exit_code: int = 0


def is_executable(path: Path) -> bool:
    try:
        return path.is_file() and (path.stat().st_mode & 0o111) != 0
    except OSError:
        return False


class HookManager:
    """Runs the hooks configured for this working directory."""

    def __init__(self, config, hooks_dir: Optional[str] = None):
        self.hooks_dir = Path(hooks_dir) if hooks_dir else Path.cwd() / '.cuti' / 'hooks'
        # Read once; later config changes are not picked up.
        self.config = HookConfig.from_mapping(config.get('hooks') if config else None)

    def is_enabled(self) -> bool:
        return self.config.enabled

    def get_config(self) -> HookConfig:
        return HookConfig(
            enabled=self.config.enabled,
            fail_on_error=self.config.fail_on_error,
            timeout=self.config.timeout
        )

    def find_hooks(self, hook_type: str) -> List[Path]:
        """Executable hooks for ``hook_type`` in lexical order."""
        if not self.hooks_dir.is_dir():
            logger.debug("Hooks directory not found: %s", self.hooks_dir)
            return []

        try:
            entries = list(self.hooks_dir.iterdir())
        except OSError as e:
            logger.debug("Error reading hooks directory: %s", e)
            return []

        hooks = sorted(
            entry for entry in entries
            if (entry.name == hook_type or entry.name.startswith(f"{hook_type}."))
            and is_executable(entry)
        )
        logger.debug("Found %d hooks for %s", len(hooks), hook_type)
        return hooks

    def execute_hook(self, hook_path: Path, context: HookContext) -> HookExecutionResult:
        """Run one hook with the context exported to its environment."""
        logger.debug("Executing hook: %s", hook_path.name)

        env = dict(os.environ)
        env.update(context.to_env())
        # A timeout of zero or less means wait indefinitely.
        timeout = self.config.timeout / 1000 if self.config.timeout > 0 else None

        try:
            result = subprocess.run(
                [str(hook_path)],
                env=env,
                capture_output=True,
                text=True,
                timeout=timeout
            )
        except subprocess.TimeoutExpired as e:
            logger.debug("Hook %s timed out", hook_path.name)
            return HookExecutionResult(
                success=False,
                output=_combine_output(e.stdout, e.stderr),
                error=f"Hook timed out after {timeout:g}s",
                exit_code=TIMEOUT_EXIT_CODE
            )
        except OSError as e:
            logger.debug("Hook %s could not be started: %s", hook_path.name, e)
            return HookExecutionResult(
                success=False,
                error=str(e),
                exit_code=NOT_EXECUTABLE_EXIT_CODE
            )

        output = _combine_output(result.stdout, result.stderr)
        if result.returncode != 0:
            logger.debug("Hook %s failed with exit code %d", hook_path.name, result.returncode)
            return HookExecutionResult(
                success=False,
                output=output,
                error=f"Command failed: {hook_path}",
                exit_code=result.returncode
            )

        logger.debug("Hook %s completed successfully", hook_path.name)
        return HookExecutionResult(success=True, output=output, exit_code=0)

    def run_hooks(self, hook_type: str, context: HookContext) -> List[HookExecutionResult]:
        """Run every hook of ``hook_type``.

        A failing hook does not stop the others unless failOnError is set, in
        which case HookError is raised right after it.
        """
        if not self.config.enabled:
            logger.debug("Hooks are disabled")
            return []

        hooks = self.find_hooks(hook_type)
        if not hooks:
            return []

        logger.debug("Running %d %s hooks", len(hooks), hook_type)
        results = []

        for hook_path in hooks:
            result = self.execute_hook(hook_path, context)
            results.append(result)

            if result.output:
                print(result.output)

            if not result.success:
                print(
                    f"❌ Hook '{hook_path.name}' failed with exit code {result.exit_code}",
                    file=sys.stderr
                )
                if result.error and result.error not in result.output:
                    print(result.error, file=sys.stderr)

                if self.config.fail_on_error:
                    raise HookError(f"Hook failed: {hook_path.name}\n{result.error}")

        return results


def _combine_output(stdout, stderr) -> str:
    parts = []
    for stream in (stdout, stderr):
        if isinstance(stream, bytes):
            stream = stream.decode('utf-8', errors='replace')
        if stream and stream.strip():
            parts.append(stream.strip())
    return '\n'.join(parts)
