"""
Command for printing the shell integration function.
"""

from cuti.core import UsageError
from cuti.utils.shell import SHELL_INTEGRATIONS


def shell_init(shell: str = 'bash') -> int:
    """Print the integration script for ``shell``."""
    integration = SHELL_INTEGRATIONS.get(shell)
    if integration is None:
        supported = ', '.join(SHELL_INTEGRATIONS)
        raise UsageError(f"Unsupported shell: {shell}. Supported shells: {supported}")

    print(integration())
    return 0
