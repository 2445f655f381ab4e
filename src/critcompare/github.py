"""Posting the report as a pull request comment."""

from __future__ import annotations

from typing import Any

import requests

from critcompare import __version__
from critcompare.config import CompareConfig
from critcompare.errors import PostError
from critcompare.logging import get_logger

log = get_logger("github")

_USER_AGENT = f"critcompare/{__version__}"
_TIMEOUT = 30.0


def comment_url(config: CompareConfig) -> str:
    """The REST endpoint for comments on the triggering issue or PR."""
    api = config.api_url.rstrip("/")
    return f"{api}/repos/{config.repository}/issues/{config.issue_number}/comments"


def post_comment(
    config: CompareConfig,
    body: str,
    *,
    session: requests.Session | None = None,
) -> int:
    """Create a comment with *body* and return its id.

    Raises:
        PostError: If the request fails or the API rejects it. Tokens
            issued to workflows triggered from forks are read-only, so a
            403 here is common and expected.
    """
    if not config.can_post:
        raise PostError("Not enough context to post a comment (token, repository, issue)")

    http = session or requests.Session()
    url = comment_url(config)
    headers = {
        "Accept": "application/vnd.github+json",
        "Authorization": f"Bearer {config.token}",
        "User-Agent": _USER_AGENT,
    }
    log.debug("POST %s", url)
    try:
        resp = http.post(url, json={"body": body}, headers=headers, timeout=_TIMEOUT)
    except requests.RequestException as exc:
        raise PostError(f"Request to {url} failed: {exc}") from exc

    if resp.status_code not in (200, 201):
        raise PostError(
            f"HTTP {resp.status_code} creating comment: {_error_message(resp)}",
            status_code=resp.status_code,
        )

    try:
        data: Any = resp.json()
        comment_id = int(data["id"])
    except (ValueError, KeyError, TypeError) as exc:
        raise PostError(f"Unexpected response creating comment: {exc}") from exc

    log.info(
        "Created comment id '%d' on issue '%s' in '%s'.",
        comment_id,
        config.issue_number,
        config.repository,
    )
    return comment_id


def _error_message(resp: requests.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        return resp.text[:200]
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return resp.text[:200]
