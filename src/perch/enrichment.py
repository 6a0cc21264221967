"""Outbound enrichment fetches, run before rendering.

A page loader may call out to a third-party API and hand the decoded
body to the render unchanged. Failures become ``UpstreamFetchError``
(502) for that request only.

Usage::

    @app.page("/github", streaming=True)
    async def github(request):
        return {"github": await github_branches("jasonboy/wechat-jssdk")}
"""

import logging
from collections.abc import Mapping
from typing import Any

import httpx

from perch.errors import UpstreamFetchError

logger = logging.getLogger("perch.enrichment")

GITHUB_API = "https://api.github.com"

# GitHub rejects requests without a User-Agent
MOBILE_USER_AGENT = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 11_0 like Mac OS X) AppleWebKit/604.1.38 "
    "(KHTML, like Gecko) Version/11.0 Mobile/15A372 Safari/604.1"
)


async def fetch_json(
    url: str,
    *,
    client: httpx.AsyncClient | None = None,
    headers: Mapping[str, str] | None = None,
    timeout: float = 10.0,
) -> Any:
    """GET *url* and return the decoded JSON body.

    Pass a long-lived *client* to reuse connections; otherwise a
    short-lived one is created for this call.

    Raises:
        UpstreamFetchError: transport failure, non-2xx status, or a body
            that is not JSON.
    """
    if client is None:
        async with httpx.AsyncClient(timeout=timeout) as own_client:
            return await _get_json(own_client, url, headers)
    return await _get_json(client, url, headers)


async def _get_json(
    client: httpx.AsyncClient,
    url: str,
    headers: Mapping[str, str] | None,
) -> Any:
    try:
        response = await client.get(url, headers=dict(headers or {}))
    except httpx.HTTPError as exc:
        logger.warning("GET %s failed: %s", url, exc)
        raise UpstreamFetchError(url) from exc

    logger.info("GET %s -> statusCode: %d", url, response.status_code)
    if response.is_error:
        raise UpstreamFetchError(url, response.status_code)

    try:
        return response.json()
    except ValueError as exc:
        raise UpstreamFetchError(
            url, response.status_code, detail=f"Upstream {url} returned invalid JSON"
        ) from exc


async def github_branches(
    repo: str,
    *,
    client: httpx.AsyncClient | None = None,
    base_url: str = GITHUB_API,
) -> Any:
    """Branches of a GitHub repository (``"owner/name"``)."""
    return await fetch_json(
        f"{base_url}/repos/{repo}/branches",
        client=client,
        headers={"User-Agent": MOBILE_USER_AGENT, "Accept": "application/vnd.github+json"},
    )
