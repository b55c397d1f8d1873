"""
Interactive prompts.

Prompts are rendered on stderr so stdout stays free for output a wrapping
shell function captures. Selection goes through a small strategy object so
callers and tests can swap the interactive implementation out.
"""

import sys
from typing import Any, Optional, Sequence, Tuple

import questionary
from prompt_toolkit.output import create_output

Choice = Tuple[str, Any]


def _stderr_output():
    return create_output(stdout=sys.stderr)


class Selector:
    """Picks one value out of ``(title, value)`` choices.

    ``select`` returns None when the user cancels.
    """

    def select(self, message: str, choices: Sequence[Choice]) -> Optional[Any]:
        raise NotImplementedError


class QuestionarySelector(Selector):
    """Arrow-key selection rendered on stderr."""

    def select(self, message: str, choices: Sequence[Choice]) -> Optional[Any]:
        if not choices:
            return None

        options = [
            questionary.Choice(title=title, value=index)
            for index, (title, _) in enumerate(choices)
        ]
        index = questionary.select(message, choices=options, output=_stderr_output()).ask()
        if index is None:
            return None
        return choices[index][1]


def prompt_text(message: str, hidden: bool = False) -> Optional[str]:
    """Ask for a line of text; None when cancelled."""
    if hidden:
        answer = questionary.password(message, output=_stderr_output()).ask()
    else:
        answer = questionary.text(message, output=_stderr_output()).ask()
    return answer.strip() if answer is not None else None
