"""
Utilities for carrying Git-ignored files over to a new worktree.

Ignored files such as ``.env`` never come along with a checkout, so they are
listed in the source tree and copied across after the worktree exists.
"""

import shutil
import subprocess
from pathlib import Path
from typing import List


def list_ignored_files(directory: Path) -> List[str]:
    """List ignored, untracked entries relative to ``directory``.

    Fully ignored directories are reported once with a trailing slash.
    """
    result = subprocess.run(
        ['git', 'ls-files', '--ignored', '--exclude-standard', '--directory', '--others'],
        cwd=directory,
        capture_output=True,
        text=True,
        check=True
    )

    return [line for line in result.stdout.strip().split('\n') if line]


def copy_ignored_files(source: Path, destination: Path, entries: List[str]) -> int:
    """Copy ``entries`` from ``source`` into ``destination`` keeping relative paths.

    Returns the number of entries copied. Entries that vanished in the
    meantime, or that contain ``destination``, are skipped.
    """
    copied = 0
    target = destination.resolve()

    for entry in entries:
        relative = entry.rstrip('/')
        src_path = source / relative
        dest_path = destination / relative

        # An ignored directory that holds the destination would copy into itself.
        resolved = src_path.resolve()
        if resolved == target or resolved in target.parents:
            continue

        if src_path.is_symlink() or src_path.is_file():
            dest_path.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(src_path, dest_path, follow_symlinks=False)
        elif src_path.is_dir():
            shutil.copytree(src_path, dest_path, symlinks=True, dirs_exist_ok=True)
        else:
            continue
        copied += 1

    return copied
