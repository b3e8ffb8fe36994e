import logging
from typing import Optional
from urllib.parse import quote

import httpx

logger = logging.getLogger(__name__)

RAW_MEDIA_TYPE = "application/vnd.github.raw"


class GitHubContentProvider:
    """File trees and file contents from the GitHub REST API."""

    def __init__(
        self,
        api_url: str = "https://api.github.com",
        token: str = "",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize GitHub client.

        Args:
            api_url: GitHub API URL.
            token: Personal access token; anonymous access if empty.
            timeout: Per-request timeout in seconds.
            transport: Custom httpx transport.
        """
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"

        self._client = httpx.AsyncClient(
            base_url=api_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get_file_tree(
        self, owner: str, repo: str, branch: str, recursive: bool = True
    ) -> list[str]:
        """Paths of all files (blobs) on a branch."""
        params = {"recursive": "1"} if recursive else None
        resp = await self._client.get(
            f"/repos/{owner}/{repo}/git/trees/{quote(branch, safe='')}", params=params
        )
        resp.raise_for_status()

        data = resp.json()
        if data.get("truncated"):
            logger.warning(f"File tree for {owner}/{repo}@{branch} was truncated by GitHub")

        paths = [item["path"] for item in data.get("tree", []) if item.get("type") == "blob"]
        logger.debug(f"Fetched {len(paths)} files from {owner}/{repo}@{branch}")
        return paths

    async def get_file_content(
        self, owner: str, repo: str, path: str, branch: str
    ) -> Optional[str]:
        """Raw file text, or None if the file does not exist."""
        resp = await self._client.get(
            f"/repos/{owner}/{repo}/contents/{quote(path)}",
            params={"ref": branch},
            headers={"Accept": RAW_MEDIA_TYPE},
        )
        if resp.status_code == 404:
            logger.debug(f"File not found: {owner}/{repo}/{path}@{branch}")
            return None
        resp.raise_for_status()
        return resp.text
