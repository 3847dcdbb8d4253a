"""GitHub account lookup used to fill in the username after authorization."""

from __future__ import annotations

import logging

import httpx

logger = logging.getLogger(__name__)

GITHUB_USER_URL = "https://api.github.com/user"


async def fetch_github_login(
    token: str,
    transport: httpx.AsyncBaseTransport | None = None,
    timeout: float = 10.0,
) -> str | None:
    """Return the login of the account owning token, or None on any failure."""
    if not token:
        return None

    headers = {
        "Authorization": f"token {token}",
        "Accept": "application/vnd.github+json",
        "User-Agent": "cloud-saves",
    }
    try:
        async with httpx.AsyncClient(transport=transport, timeout=timeout) as client:
            response = await client.get(GITHUB_USER_URL, headers=headers)
            response.raise_for_status()
            login = response.json().get("login")
    except (httpx.HTTPError, ValueError, AttributeError) as e:
        logger.warning(f"GitHub user lookup failed: {e}")
        return None

    return login if isinstance(login, str) and login else None
