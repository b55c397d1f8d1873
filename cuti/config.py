"""
Layered configuration store.

Two JSON documents are kept: a global one under the user's home directory and
a local one under the working directory. Values are addressed with dotted
keys such as ``jira.host``. The merged view overlays the local document onto
the global one at the top level only, so a local ``jira`` object replaces the
global ``jira`` object instead of being merged into it.
"""

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .core import ConfigError

logger = logging.getLogger(__name__)

CONFIG_VERSION = '1.0.0'
CONFIG_FILENAME = 'config.json'
CONFIG_DIRNAME = '.cuti'

DEFAULT_CONFIG = {'version': CONFIG_VERSION}

ConfigValue = Union[None, bool, int, float, str, List[Any], Dict[str, Any]]

_MISSING = object()


def split_key(key: str) -> List[str]:
    return key.split('.')


def is_node(value: ConfigValue) -> bool:
    """Object nodes are the only values a dotted path can descend into."""
    return isinstance(value, dict)


def walk_path(document: Dict[str, Any], keys: List[str]) -> Any:
    """Return the value at ``keys`` or ``_MISSING``."""
    current = document
    for key in keys:
        if not is_node(current) or key not in current:
            return _MISSING
        current = current[key]
    return current


def ensure_path(document: Dict[str, Any], keys: List[str]) -> Dict[str, Any]:
    """Walk ``keys``, creating object nodes, and return the last node.

    A non-object value in the way is replaced by an empty object.
    """
    current = document
    for key in keys:
        if not is_node(current.get(key)):
            current[key] = {}
        current = current[key]
    return current


def remove_path(document: Dict[str, Any], keys: List[str]) -> bool:
    """Delete the leaf at ``keys``; return whether anything was removed."""
    parent = walk_path(document, keys[:-1])
    if not is_node(parent) or keys[-1] not in parent:
        return False
    del parent[keys[-1]]
    return True


def parse_config_value(raw: str) -> ConfigValue:
    """Decode a command-line value as JSON, falling back to the literal string.

    ``NaN`` and ``Infinity`` are not JSON and stay strings.
    """
    try:
        return json.loads(raw, parse_constant=_reject_constant)
    except ValueError:
        return raw


def _reject_constant(name: str) -> None:
    raise ValueError(f"Unsupported JSON constant: {name}")


def default_global_dir() -> Path:
    override = os.environ.get('CUTI_HOME')
    if override:
        return Path(override)
    return Path.home() / CONFIG_DIRNAME


class ConfigManager:
    """Global and local JSON configuration with dotted-key access."""

    def __init__(self, global_dir: Optional[str] = None, local_dir: Optional[str] = None):
        """Initialize with configuration directories.

        ``global_dir`` defaults to ``$CUTI_HOME`` or ``~/.cuti`` and
        ``local_dir`` to ``./.cuti``. Both documents are read immediately.
        """
        self.global_config_dir = Path(global_dir) if global_dir else default_global_dir()
        self.local_config_dir = Path(local_dir) if local_dir else Path.cwd() / CONFIG_DIRNAME

        self.global_config: Dict[str, Any] = dict(DEFAULT_CONFIG)
        self.local_config: Dict[str, Any] = {}
        self.merged_config: Dict[str, Any] = dict(DEFAULT_CONFIG)

        self.reload()

    @property
    def global_config_path(self) -> Path:
        return self.global_config_dir / CONFIG_FILENAME

    @property
    def local_config_path(self) -> Path:
        return self.local_config_dir / CONFIG_FILENAME

    def _read_document(self, path: Path) -> Optional[Dict[str, Any]]:
        """Read a JSON object from ``path``; None when missing, empty or invalid."""
        try:
            content = path.read_text(encoding='utf-8')
        except OSError:
            return None

        if not content.strip():
            return None

        try:
            document = json.loads(content)
        except ValueError:
            logger.debug("Ignoring malformed config file %s", path)
            return None

        if not isinstance(document, dict):
            logger.debug("Ignoring non-object config file %s", path)
            return None
        return document

    def _write_document(self, path: Path, document: Dict[str, Any], scope: str) -> None:
        # Serialize before touching the file so a bad value cannot truncate it.
        try:
            content = json.dumps(document, indent=2, allow_nan=False)
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding='utf-8')
        except (OSError, TypeError, ValueError) as e:
            raise ConfigError(f"Failed to save {scope} config: {e}")

    def _commit(self, is_global: bool, document: Dict[str, Any]) -> None:
        """Persist ``document`` as the target scope, then adopt it in memory."""
        if is_global:
            self._write_document(self.global_config_path, document, 'global')
            self.global_config = document
        else:
            self._write_document(self.local_config_path, document, 'local')
            self.local_config = document
        self._merge()

    def _merge(self) -> None:
        self.merged_config = {**self.global_config, **self.local_config}

    def _target(self, is_global: bool) -> Dict[str, Any]:
        return self.global_config if is_global else self.local_config

    def reload(self) -> None:
        """Re-read both documents from disk, dropping in-memory state."""
        global_document = self._read_document(self.global_config_path)
        self.global_config = {**DEFAULT_CONFIG, **(global_document or {})}
        self.local_config = self._read_document(self.local_config_path) or {}
        self._merge()

    def get(self, key: str, default: Any = None) -> Any:
        """Look up a dotted key in the merged view."""
        value = walk_path(self.merged_config, split_key(key))
        if value is _MISSING:
            return default
        return copy.deepcopy(value)

    def get_config(self) -> Dict[str, Any]:
        return copy.deepcopy(self.merged_config)

    def set(self, key: str, value: ConfigValue, is_global: bool = False) -> None:
        """Assign ``value`` at a dotted key and persist the target document."""
        keys = split_key(key)
        document = copy.deepcopy(self._target(is_global))
        parent = ensure_path(document, keys[:-1])
        parent[keys[-1]] = copy.deepcopy(value)
        self._commit(is_global, document)

    def set_multiple(self, values: Dict[str, Any], is_global: bool = False) -> None:
        """Overlay several top-level keys at once."""
        document = copy.deepcopy(self._target(is_global))
        document.update(copy.deepcopy(values))
        self._commit(is_global, document)

    def delete(self, key: str, is_global: bool = False) -> None:
        """Remove a dotted key; missing keys are ignored."""
        document = copy.deepcopy(self._target(is_global))
        remove_path(document, split_key(key))
        self._commit(is_global, document)

    def clear_global(self) -> None:
        self._commit(True, dict(DEFAULT_CONFIG))

    def clear_local(self) -> None:
        self._commit(False, {})

    def reset(self, scope: str = 'all') -> None:
        """Reset ``global``, ``local`` or ``all`` documents to their defaults."""
        if scope not in ('global', 'local', 'all'):
            raise ConfigError(f"Unknown config scope: {scope}")
        if scope in ('global', 'all'):
            self.clear_global()
        if scope in ('local', 'all'):
            self.clear_local()

    def list_configs(self, scope: Optional[str] = None) -> Dict[str, Any]:
        """Snapshot the documents selected by ``scope``.

        ``local`` is None when the local document is empty; ``merged`` is
        only included when no scope is given.
        """
        result = {}
        if scope in (None, 'global'):
            result['global'] = copy.deepcopy(self.global_config)
        if scope in (None, 'local'):
            result['local'] = copy.deepcopy(self.local_config) if self.local_config else None
        if scope is None:
            result['merged'] = copy.deepcopy(self.merged_config)
        return result

    def init_local_config(self) -> bool:
        """Create a local config file holding only the version.

        Returns False when the file already exists.
        """
        if self.local_config_exists():
            return False

        try:
            self._commit(False, {'version': CONFIG_VERSION})
        except ConfigError as e:
            raise ConfigError(f"Failed to initialize local config: {e}")
        return True

    def has_global_config(self) -> bool:
        return len(self.global_config) > len(DEFAULT_CONFIG)

    def has_local_config(self) -> bool:
        return len(self.local_config) > 0

    def global_config_exists(self) -> bool:
        return self.global_config_path.exists()

    def local_config_exists(self) -> bool:
        return self.local_config_path.exists()
