"""
Shell integration scripts.

The emitted function wraps ``cuti`` so that a bare ``cuti wt`` can change the
calling shell's directory: the real binary runs with ``CUTI_SHELL_CD=1`` and
prints only the selected path on stdout, while the prompt goes to stderr.
"""

from typing import Callable, Dict

SHELL_CD_ENV = 'CUTI_SHELL_CD'

_POSIX_FUNCTION = """# cuti shell integration for {shell}
cuti() {{
    # Use 'command' to bypass this function and reach the actual binary
    local cuti_bin="$(command -p which cuti 2>/dev/null || which cuti)"

    if [ "$1" = "wt" ] && [ $# -eq 1 ]; then
        # Capture only stdout (the path); the prompt stays on the terminal
        local output
        output="$({env}=1 command "$cuti_bin" wt 2>&3 3>&-)"
        local exit_code=$?

        if [ $exit_code -eq 0 ] && [ -d "$output" ]; then
            cd "$output"
        else
            return $exit_code
        fi
    else
        command "$cuti_bin" "$@"
    fi
}} 3>&2"""

_FISH_FUNCTION = """# cuti shell integration for fish
function cuti
    set -l cuti_bin (command -s cuti)

    if test "$argv[1]" = "wt" -a (count $argv) -eq 1
        # Capture only stdout (the path); the prompt stays on the terminal
        set -l output (env {env}=1 $cuti_bin wt)
        set -l exit_code $status

        if test $exit_code -eq 0 -a -d "$output"
            cd "$output"
        else
            return $exit_code
        end
    else
        command $cuti_bin $argv
    end
end"""


def get_bash_integration() -> str:
    return _POSIX_FUNCTION.format(shell='bash', env=SHELL_CD_ENV)


def get_zsh_integration() -> str:
    return _POSIX_FUNCTION.format(shell='zsh', env=SHELL_CD_ENV)


def get_fish_integration() -> str:
    return _FISH_FUNCTION.format(env=SHELL_CD_ENV)


SHELL_INTEGRATIONS: Dict[str, Callable[[], str]] = {
    'bash': get_bash_integration,
    'zsh': get_zsh_integration,
    'fish': get_fish_integration,
}
