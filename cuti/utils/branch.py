"""
Branch name generation from issue metadata.
"""

import logging
import re
import subprocess
from typing import Optional

logger = logging.getLogger(__name__)

CLAUDE_MODEL = 'claude-3-5-haiku-20241022'
CLAUDE_TIMEOUT = 60
MAX_BRANCH_LENGTH = 50

STOP_WORDS = {'a', 'an', 'the', 'and', 'or', 'of', 'to', 'in', 'on', 'for', 'with'}

PROMPT_TEMPLATE = """Generate a concise Git branch name for this issue:

Summary: {summary}
{description}
Requirements:
- Follow with a short, descriptive slug (2-5 words)
- Use kebab-case (lowercase with hyphens)
- Keep total length under 50 characters
- Focus on the main action or feature
- Avoid unnecessary words like "the", "a", "an"

Examples:
- add-user-auth
- fix-dashboard-performance
- update-api-docs

Respond with ONLY the branch name, nothing else."""


def slugify(text: str, max_length: int = MAX_BRANCH_LENGTH) -> str:
    """Lowercase kebab-case slug without stop words, cut at a word boundary."""
    words = [w for w in re.split(r'[^a-z0-9]+', text.lower()) if w and w not in STOP_WORDS]

    slug = ''
    for word in words:
        candidate = f"{slug}-{word}" if slug else word
        if len(candidate) > max_length:
            break
        slug = candidate

    if not slug and words:
        slug = words[0][:max_length]
    return slug


def _ask_claude(summary: str, description: Optional[str]) -> str:
    prompt = PROMPT_TEMPLATE.format(
        summary=summary,
        description=f"Description: {description}\n" if description else ''
    )
    result = subprocess.run(
        ['claude', '--model', CLAUDE_MODEL, '--print', prompt],
        capture_output=True,
        text=True,
        timeout=CLAUDE_TIMEOUT,
        check=True
    )
    return slugify(result.stdout.strip())


def generate_branch_name(
    issue_key: str,
    summary: str,
    description: Optional[str] = None,
    use_claude: bool = False
) -> str:
    """Build ``<issue-key>-<slug>`` for an issue.

    With ``use_claude`` the slug is requested from the ``claude`` CLI; any
    failure there falls back to a slug of the summary.
    """
    prefix = issue_key.lower()
    budget = max(MAX_BRANCH_LENGTH - len(prefix) - 1, 0)

    slug = ''
    if use_claude:
        try:
            slug = _ask_claude(summary, description)[:budget].strip('-')
            logger.debug("Claude generated slug: %s", slug)
        except (OSError, subprocess.SubprocessError) as e:
            logger.warning("Failed to generate branch name with Claude, using summary: %s", e)

    if not slug:
        slug = slugify(summary, budget)

    return f"{prefix}-{slug}" if slug else prefix
