"""
Jira integration: issue key parsing, credentials, REST client and the
preprocessing that turns an issue into a worktree branch name.
"""

import logging
import re
import sys
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

import httpx

from ..core import CutiError
from .branch import generate_branch_name
from .prompts import prompt_text

logger = logging.getLogger(__name__)

API_TOKEN_URL = 'https://id.atlassian.com/manage-profile/security/api-tokens'
IN_PROGRESS = 'In Progress'

_URL_PATTERN = re.compile(r'/browse/([A-Z][A-Z0-9]*-\d+)', re.IGNORECASE)
_KEY_PATTERN = re.compile(r'^([A-Z][A-Z0-9]*-\d+)$', re.IGNORECASE)


class JiraError(CutiError):
    pass


class JiraAuthError(JiraError):
    pass


class JiraIssueNotFoundError(JiraError):
    pass


class InvalidIssueKeyError(CutiError):
    pass


@dataclass
class JiraConfig:
    host: str
    email: str
    api_token: str

    def to_dict(self) -> Dict[str, str]:
        return {'host': self.host, 'email': self.email, 'apiToken': self.api_token}


@dataclass
class JiraIssue:
    key: str
    summary: str
    description: Optional[str] = None


@dataclass
class JiraPreprocessResult:
    branch_name: str
    issue_key: str
    summary: str
    warnings: List[str] = field(default_factory=list)


def extract_issue_key(text: str) -> str:
    """Pull an issue key out of a browse URL or a bare key like ``CCR-1234``."""
    match = _URL_PATTERN.search(text) or _KEY_PATTERN.match(text.strip())
    if not match:
        raise InvalidIssueKeyError(
            f'Invalid input: "{text}". Expected a Jira URL or issue key (e.g., CCR-1234)'
        )
    return match.group(1).upper()


def normalize_host(host: str) -> str:
    host = host.strip()
    if not host.startswith(('http://', 'https://')):
        host = f"https://{host}"
    return host.rstrip('/')


def get_jira_config(config) -> Optional[JiraConfig]:
    """Complete Jira credentials from the config store, or None."""
    values = config.get('jira')
    if not isinstance(values, dict):
        return None
    host, email, token = values.get('host'), values.get('email'), values.get('apiToken')
    if not host or not email or not token:
        return None
    return JiraConfig(host=host, email=email, api_token=token)


def has_jira_config(config) -> bool:
    return get_jira_config(config) is not None


def ensure_jira_config(
    config,
    force_prompt: bool = False,
    ask: Callable[..., Optional[str]] = prompt_text
) -> JiraConfig:
    """Return Jira credentials, prompting for missing values.

    Prompted credentials are stored in the global config.
    """
    if not force_prompt:
        existing = get_jira_config(config)
        if existing:
            return existing

    print("Jira configuration not found. Please provide your Jira details:", file=sys.stderr)
    print(f"You can create an API token at: {API_TOKEN_URL}", file=sys.stderr)

    partial = config.get('jira')
    if not isinstance(partial, dict) or force_prompt:
        partial = {}

    def _value(key: str, message: str, hidden: bool = False) -> str:
        value = partial.get(key) or ask(message, hidden=hidden)
        if not value:
            raise JiraError("Jira configuration cancelled")
        return value

    jira_config = JiraConfig(
        host=normalize_host(_value('host', 'Jira host URL (e.g., https://yoursite.atlassian.net):')),
        email=_value('email', 'Email address:'),
        api_token=_value('apiToken', 'API token:', hidden=True)
    )

    config.set('jira', jira_config.to_dict(), is_global=True)
    print("✅ Jira configuration saved to global config", file=sys.stderr)
    return jira_config


def clear_jira_config(config) -> None:
    config.delete('jira', is_global=True)


def _description_text(value: Any) -> Optional[str]:
    """Flatten an Atlassian document (or plain string) description to text."""
    if value is None:
        return None
    if isinstance(value, str):
        return value

    parts = []

    def walk(node):
        if isinstance(node, dict):
            if node.get('type') == 'text':
                parts.append(node.get('text', ''))
            for child in node.get('content', []):
                walk(child)
            if node.get('type') == 'paragraph':
                parts.append('\n')
        elif isinstance(node, list):
            for child in node:
                walk(child)

    walk(value)
    return ''.join(parts).strip() or None


class JiraClient:
    """Thin client for the Jira Cloud REST API v3."""

    def __init__(self, host: str, email: str, api_token: str, transport=None, timeout: float = 30.0):
        self.client = httpx.Client(
            base_url=f"{normalize_host(host)}/rest/api/3",
            auth=(email, api_token),
            headers={'Accept': 'application/json'},
            timeout=timeout,
            transport=transport
        )

    @classmethod
    def from_config(cls, jira_config: JiraConfig, **kwargs) -> 'JiraClient':
        return cls(jira_config.host, jira_config.email, jira_config.api_token, **kwargs)

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> 'JiraClient':
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def _request(self, method: str, url: str, issue_key: Optional[str] = None, **kwargs) -> httpx.Response:
        try:
            response = self.client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise JiraError(f"Jira request failed: {e}")

        if response.status_code == 401:
            raise JiraAuthError("Invalid Jira credentials")
        if response.status_code == 404 and issue_key:
            raise JiraIssueNotFoundError(f"Issue {issue_key} not found")
        if response.is_error:
            raise JiraError(f"Jira request failed with status {response.status_code}: {response.text}")
        return response

    def get_issue(self, issue_key: str) -> JiraIssue:
        response = self._request(
            'GET', f"/issue/{issue_key}", issue_key,
            params={'fields': 'summary,description'}
        )
        fields = response.json().get('fields', {})
        return JiraIssue(
            key=issue_key,
            summary=fields.get('summary', ''),
            description=_description_text(fields.get('description'))
        )

    def get_current_account_id(self) -> str:
        return self._request('GET', '/myself').json()['accountId']

    def assign_to_current_user(self, issue_key: str) -> None:
        account_id = self.get_current_account_id()
        self._request('PUT', f"/issue/{issue_key}/assignee", issue_key, json={'accountId': account_id})

    def transition(self, issue_key: str, status_name: str) -> None:
        """Move an issue through the transition named (or leading to) ``status_name``."""
        response = self._request('GET', f"/issue/{issue_key}/transitions", issue_key)
        wanted = status_name.lower()

        for transition in response.json().get('transitions', []):
            target = transition.get('to', {}).get('name', '')
            if transition.get('name', '').lower() == wanted or target.lower() == wanted:
                self._request(
                    'POST', f"/issue/{issue_key}/transitions", issue_key,
                    json={'transition': {'id': transition['id']}}
                )
                return

        raise JiraError(f"No transition to '{status_name}' available for {issue_key}")


def preprocess_jira_issue(
    text: str,
    client: JiraClient,
    assign: bool = True,
    transition: bool = True,
    use_claude: bool = False
) -> JiraPreprocessResult:
    """Resolve an issue reference into a branch name.

    Assigning and transitioning the issue are side effects whose failures are
    reported as warnings.
    """
    issue_key = extract_issue_key(text)
    logger.debug("Extracted issue key: %s", issue_key)

    print(f"Fetching issue details for {issue_key}...", file=sys.stderr)
    issue = client.get_issue(issue_key)

    branch_name = generate_branch_name(issue_key, issue.summary, issue.description, use_claude)
    result = JiraPreprocessResult(branch_name=branch_name, issue_key=issue_key, summary=issue.summary)

    if assign:
        try:
            client.assign_to_current_user(issue_key)
            print("✅ Issue assigned successfully", file=sys.stderr)
        except JiraError as e:
            result.warnings.append(f"Failed to assign issue: {e}")

    if transition:
        try:
            client.transition(issue_key, IN_PROGRESS)
            print(f'✅ Issue transitioned to "{IN_PROGRESS}"', file=sys.stderr)
        except JiraError as e:
            result.warnings.append(f"Failed to transition issue: {e}")

    for warning in result.warnings:
        print(f"⚠️  {warning}", file=sys.stderr)

    print(f"  Issue:  {issue_key} - {issue.summary}", file=sys.stderr)
    print(f"  Branch: {branch_name}", file=sys.stderr)
    return result
