"""
github
======

GitHub Actions integration.

Implements the small part of the Actions runtime the checker needs, reading
and writing the files and environment variables the runner provides:

- inputs: ``INPUT_<NAME>`` environment variables
- outputs: ``$GITHUB_OUTPUT``
- job summary: ``$GITHUB_STEP_SUMMARY``
- pull request comments: REST API, ``POST /repos/{repo}/issues/{number}/comments``
"""

from __future__ import annotations

import json
import logging
import os
import uuid
from pathlib import Path
from typing import Mapping, Optional

import httpx

from .errors import NotificationError

log = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"


def in_github_actions(env: Optional[Mapping[str, str]] = None) -> bool:
    """Return True when running inside a GitHub Actions job."""
    env = os.environ if env is None else env
    return env.get("GITHUB_ACTIONS", "").lower() == "true"


def input_env_name(name: str) -> str:
    """Return the environment variable the runner uses for action input *name*."""
    return "INPUT_" + name.replace(" ", "_").upper()


def get_input(name: str, env: Optional[Mapping[str, str]] = None) -> Optional[str]:
    """Return action input *name*, or None when unset or blank."""
    env = os.environ if env is None else env
    value = env.get(input_env_name(name), "").strip()
    return value or None


def _format_output(name: str, value: str) -> str:
    if "\n" not in value:
        return f"{name}={value}\n"
    delimiter = f"ghadelimiter_{uuid.uuid4()}"
    return f"{name}<<{delimiter}\n{value}\n{delimiter}\n"


def set_outputs(outputs: Mapping[str, str], env: Optional[Mapping[str, str]] = None) -> None:
    """Publish step outputs.

    Appends to ``$GITHUB_OUTPUT`` when the runner provides it, otherwise
    prints ``name=value`` lines so local runs show the same information.
    """
    env = os.environ if env is None else env
    text = "".join(_format_output(k, str(v)) for k, v in outputs.items())
    path = env.get("GITHUB_OUTPUT")
    if not path:
        print(text, end="")
        return
    with open(path, "a", encoding="utf-8") as f:
        f.write(text)


def append_step_summary(markdown: str, env: Optional[Mapping[str, str]] = None) -> bool:
    """Append *markdown* to the job summary. Returns False outside Actions."""
    env = os.environ if env is None else env
    path = env.get("GITHUB_STEP_SUMMARY")
    if not path:
        return False
    with open(path, "a", encoding="utf-8") as f:
        f.write(markdown.rstrip("\n") + "\n")
    return True


def pull_request_number(env: Optional[Mapping[str, str]] = None) -> Optional[int]:
    """Find the pull request number of the triggering event.

    Looks at ``pull_request.number`` then ``issue.number`` (comment events on
    pull requests) in the ``$GITHUB_EVENT_PATH`` payload. A missing or
    unreadable payload yields None.
    """
    env = os.environ if env is None else env
    event_path = env.get("GITHUB_EVENT_PATH")
    if not event_path or not Path(event_path).exists():
        return None
    try:
        with open(event_path, "r", encoding="utf-8") as f:
            payload = json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        log.warning("cannot read event payload %s: %s", event_path, exc)
        return None
    if not isinstance(payload, dict):
        return None
    for key in ("pull_request", "issue"):
        number = (payload.get(key) or {}).get("number")
        if number:
            return int(number)
    return None


def post_pr_comment(
    body: str,
    token: str,
    repository: str,
    number: int,
    api_url: str = DEFAULT_API_URL,
    timeout: int = 30,
) -> str:
    """Post *body* as a comment on pull request *number*.

    Parameters
    ----------
    body:
        Markdown comment text.
    token:
        Token with ``pull-requests: write`` / ``issues: write`` permission.
    repository:
        ``owner/name``.
    number:
        Pull request number.
    api_url:
        REST API root (``$GITHUB_API_URL`` on GitHub Enterprise).

    Returns
    -------
    str
        The ``html_url`` of the created comment.

    Raises
    ------
    NotificationError
        If the request fails or the API rejects it.
    """
    url = f"{api_url.rstrip('/')}/repos/{repository}/issues/{number}/comments"
    headers = {
        "Authorization": f"Bearer {token}",
        "Accept": "application/vnd.github+json",
        "X-GitHub-Api-Version": "2022-11-28",
    }
    log.debug("posting comment to %s#%d", repository, number)
    try:
        response = httpx.post(url, json={"body": body}, headers=headers, timeout=timeout)
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        raise NotificationError(
            f"GitHub API returned {e.response.status_code} for {url}", operation="comment"
        ) from e
    except httpx.RequestError as e:
        raise NotificationError(f"cannot reach GitHub API at {api_url}: {e}", operation="comment") from e
    return str(response.json().get("html_url", ""))
