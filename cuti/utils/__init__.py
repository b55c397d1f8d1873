"""
Utility modules for cuti.
"""

from .gitignore import (
    list_ignored_files,
    copy_ignored_files
)

from .branch import (
    slugify,
    generate_branch_name
)

from .shell import (
    SHELL_CD_ENV,
    SHELL_INTEGRATIONS,
    get_bash_integration,
    get_zsh_integration,
    get_fish_integration
)

__all__ = [
    # ignored file propagation
    'list_ignored_files',
    'copy_ignored_files',

    # branch naming
    'slugify',
    'generate_branch_name',

    # shell integration
    'SHELL_CD_ENV',
    'SHELL_INTEGRATIONS',
    'get_bash_integration',
    'get_zsh_integration',
    'get_fish_integration'
]
