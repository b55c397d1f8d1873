"""
Command for managing cuti configuration.
"""

import json
import sys
from typing import Any, Dict, List, Optional

from cuti.config import ConfigManager, parse_config_value
from cuti.core import UsageError


def _display_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value)


def format_config(values: Dict[str, Any], indent: str = '  ') -> str:
    """Render a config document as an indented ``key: value`` tree."""
    lines: List[str] = []
    for key, value in values.items():
        if isinstance(value, dict):
            lines.append(f"{indent}{key}:")
            nested = format_config(value, indent + '  ')
            if nested:
                lines.append(nested)
        else:
            lines.append(f"{indent}{key}: {_display_value(value)}")
    return '\n'.join(lines)


def _display_config(title: str, values: Dict[str, Any]) -> None:
    print(title)
    print(format_config(values))


def _scope_from_flags(global_only: bool, local_only: bool, default: Optional[str]) -> Optional[str]:
    if global_only and local_only:
        raise UsageError("Cannot use both --global and --local flags")
    if global_only:
        return 'global'
    if local_only:
        return 'local'
    return default


def get_value(config: ConfigManager, key: str) -> int:
    missing = object()
    value = config.get(key, missing)
    if value is missing:
        print(f"⚠️  Key '{key}' not found", file=sys.stderr)
        return 1

    if isinstance(value, (dict, list)):
        print(f"{key}: {json.dumps(value, indent=2)}")
    else:
        print(f"{key}: {_display_value(value)}")
    return 0


def set_value(config: ConfigManager, key: str, raw_value: str, is_global: bool = False) -> int:
    value = parse_config_value(raw_value)
    config.set(key, value, is_global)

    location = 'global' if is_global else 'local'
    print(f"✅ Set {key} = {_display_value(value)} in {location} config")
    return 0


def delete_value(config: ConfigManager, key: str, is_global: bool = False) -> int:
    config.delete(key, is_global)

    location = 'global' if is_global else 'local'
    print(f"✅ Deleted key '{key}' from {location} config")
    return 0


def list_config(config: ConfigManager, global_only: bool = False, local_only: bool = False) -> int:
    """Show one document, or the merged view when no scope is chosen."""
    scope = _scope_from_flags(global_only, local_only, None)

    if scope == 'global':
        values = config.list_configs('global')['global']
        _display_config(f"Global Configuration ({config.global_config_path})", values)
        return 0

    if scope == 'local':
        values = config.list_configs('local')['local']
        if values:
            _display_config(f"Local Configuration ({config.local_config_path})", values)
        else:
            print("No local configuration found")
        return 0

    has_global = config.has_global_config()
    has_local = config.has_local_config()

    if not has_global and not has_local:
        print("No configuration found")
        print('Use "cuti config init" to create a local config file')
        print('Use "cuti config set <key> <value> --global" to create a global config')
        return 0

    if has_global and has_local:
        title = "Configuration (Local overrides Global)"
    elif has_global:
        title = "Configuration (Global only)"
    else:
        title = "Configuration (Local only)"

    _display_config(title, config.get_config())
    print()
    if has_global:
        print(f"Global config: {config.global_config_path}")
    if has_local:
        print(f"Local config: {config.local_config_path}")
    return 0


def reset_config(
    config: ConfigManager,
    global_only: bool = False,
    local_only: bool = False,
    force: bool = False
) -> int:
    scope = _scope_from_flags(global_only, local_only, 'all')

    if not force:
        if scope == 'all':
            print("⚠️  This will reset both global and local configurations to defaults.")
        else:
            print(f"⚠️  This will reset {scope} configuration to defaults.")
        print("Use --force to skip this confirmation.")
        return 1

    config.reset(scope)

    if scope == 'all':
        print("✅ Reset both global and local configurations to defaults")
    else:
        print(f"✅ Reset {scope} configuration to defaults")
    return 0


def init_config(config: ConfigManager) -> int:
    if config.init_local_config():
        print(f"✅ Initialized local config file at {config.local_config_path}")
    else:
        print(f"Local config file already exists at {config.local_config_path}")
    return 0


def handle_config_command(config: ConfigManager, args) -> int:
    """Dispatch ``cuti config`` subcommands."""
    command = args.config_command

    if command == 'get':
        return get_value(config, args.key)
    elif command == 'set':
        return set_value(config, args.key, args.value, args.is_global)
    elif command == 'delete':
        return delete_value(config, args.key, args.is_global)
    elif command == 'list' or command is None:
        return list_config(
            config,
            getattr(args, 'is_global', False),
            getattr(args, 'is_local', False)
        )
    elif command == 'reset':
        return reset_config(config, args.is_global, args.is_local, args.force)
    elif command == 'init':
        return init_config(config)
    else:
        raise UsageError(f"Config command '{command}' not yet implemented")
