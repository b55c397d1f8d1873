"""
CLI interface for cuti.
"""

import argparse
import logging
import os
import sys
from typing import List, Optional

from . import __version__
from .commands.config import handle_config_command
from .commands.shell_init import shell_init
from .commands.worktree import handle_worktree_command
from .config import ConfigManager
from .core import CutiError, CutiRepo, SelectionCancelledError
from .hooks import HookManager
from .utils.prompts import QuestionarySelector

CANCELLED_EXIT_CODE = 130


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog='cuti',
        description='Manage Git worktrees, optionally driven by Jira issues'
    )

    parser.add_argument(
        '--version', '-v',
        action='version',
        version=f'%(prog)s {__version__}'
    )

    parser.add_argument(
        '--debug', '-d',
        action='store_true',
        help='Enable debug output'
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # Worktree commands
    worktree_parser = subparsers.add_parser(
        'worktree', aliases=['wt'], help='Manage git worktrees'
    )
    worktree_subparsers = worktree_parser.add_subparsers(dest='worktree_command')

    # worktree add
    add_parser = worktree_subparsers.add_parser('add', help='Add a new worktree')
    add_parser.add_argument('branch', help='Branch name (or Jira issue key/URL with --jira)')
    add_parser.add_argument(
        '--path', '-p',
        help='Custom path for the worktree (default: ../<repo-name>_worktrees/<branch-name>)'
    )
    add_parser.add_argument(
        '--force', '-f', action='store_true',
        help='Force creation even if branch exists or has uncommitted changes'
    )
    add_parser.add_argument(
        '--jira', '-j', action='store_true',
        help='Treat the branch parameter as a Jira issue key or URL'
    )
    add_parser.add_argument(
        '--no-assign', dest='assign', action='store_false',
        help="Don't assign the Jira issue to yourself (only with --jira)"
    )
    add_parser.add_argument(
        '--no-transition', dest='transition', action='store_false',
        help="Don't transition the Jira issue to In Progress (only with --jira)"
    )
    add_parser.add_argument(
        '--name-only', action='store_true',
        help='Only output the generated branch name (only with --jira)'
    )
    add_parser.add_argument(
        '--claude', action='store_true',
        help='Generate the branch slug with the claude CLI (only with --jira)'
    )

    # worktree remove
    remove_parser = worktree_subparsers.add_parser(
        'remove', aliases=['rm'], help='Remove an existing worktree'
    )
    remove_parser.add_argument('branch', nargs='?', help='Branch of the worktree to remove')
    remove_parser.add_argument(
        '--force', '-f', action='store_true',
        help='Force removal even if worktree has uncommitted changes'
    )

    # worktree list
    worktree_subparsers.add_parser('list', aliases=['ls'], help='List all worktrees')

    # Configuration
    config_parser = subparsers.add_parser('config', help='Manage configuration settings')
    config_subparsers = config_parser.add_subparsers(dest='config_command')

    get_parser = config_subparsers.add_parser('get', help='Display configuration value')
    get_parser.add_argument('key', help='Dotted configuration key')

    set_parser = config_subparsers.add_parser('set', help='Set configuration value')
    set_parser.add_argument('key', help='Dotted configuration key')
    set_parser.add_argument('value', help='Value (parsed as JSON when possible)')
    set_parser.add_argument(
        '--global', dest='is_global', action='store_true',
        help='Set value in global config (~/.cuti/config.json)'
    )

    delete_parser = config_subparsers.add_parser('delete', help='Delete a configuration value')
    delete_parser.add_argument('key', help='Dotted configuration key')
    delete_parser.add_argument(
        '--global', dest='is_global', action='store_true',
        help='Delete from global config'
    )

    list_parser = config_subparsers.add_parser('list', help='List all configuration values')
    list_parser.add_argument('--global', dest='is_global', action='store_true', help='Show only global config')
    list_parser.add_argument('--local', dest='is_local', action='store_true', help='Show only local config')

    reset_parser = config_subparsers.add_parser('reset', help='Reset configuration to defaults')
    reset_parser.add_argument('--global', dest='is_global', action='store_true', help='Reset only global config')
    reset_parser.add_argument('--local', dest='is_local', action='store_true', help='Reset only local config')
    reset_parser.add_argument('--force', '-f', action='store_true', help='Skip confirmation')

    config_subparsers.add_parser('init', help='Initialize local config file (.cuti/config.json)')

    # Shell integration
    shell_parser = subparsers.add_parser('shell-init', help='Output shell integration script')
    shell_parser.add_argument('shell', nargs='?', default='bash', help='Shell type (bash, zsh, fish)')

    return parser


def setup_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s',
        stream=sys.stderr
    )


def main(args: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    if args is None:
        args = sys.argv[1:]

    parser = create_parser()
    parsed_args = parser.parse_args(args)

    debug = parsed_args.debug or os.environ.get('CUTI_DEBUG') == '1'
    setup_logging(debug)

    if not parsed_args.command:
        parser.print_help()
        return 1

    try:
        config = ConfigManager()

        if parsed_args.command in ('worktree', 'wt'):
            selector = QuestionarySelector()
            repo = CutiRepo(config, selector=selector)
            hooks = HookManager(config)
            return handle_worktree_command(repo, hooks, config, selector, parsed_args)
        elif parsed_args.command == 'config':
            return handle_config_command(config, parsed_args)
        elif parsed_args.command == 'shell-init':
            return shell_init(parsed_args.shell)
        else:
            print(f"Command '{parsed_args.command}' not yet implemented", file=sys.stderr)
            return 1

    except SelectionCancelledError as e:
        print(f"Error: {e}", file=sys.stderr)
        return CANCELLED_EXIT_CODE
    except CutiError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("Cancelled", file=sys.stderr)
        return CANCELLED_EXIT_CODE
    except Exception as e:
        if debug:
            import traceback
            traceback.print_exc()
        else:
            print(f"Unexpected error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
