"""GitHub REST API client.

Implements RepositoryHost on top of the v3 REST API:
- repository metadata and refs
- README / file contents (base64 decoded)
- contents updates with an expected base SHA
- pull request listing and creation
"""

from __future__ import annotations

import base64
from typing import Any
from urllib.parse import quote

import httpx

from readme_sync.github.base import GitHubAPIError, RepositoryHost
from readme_sync.schemas import FileContent, PullRequest, RepositoryInfo


GITHUB_API_VERSION = "2022-11-28"


class GitHubClient(RepositoryHost):
    """RepositoryHost adapter authenticated with a single token."""

    def __init__(
        self,
        token: str,
        base_url: str = "https://api.github.com",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": GITHUB_API_VERSION,
            },
            timeout=timeout,
            transport=transport,
        )

    async def _request(
        self,
        method: str,
        url: str,
        *,
        allow_missing: bool = False,
        **kwargs: Any,
    ) -> Any:
        """Send a request and decode the JSON body.

        Returns None for a 404 response when ``allow_missing`` is set.
        """
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise GitHubAPIError(f"{method} {url}: {e}") from e

        if response.status_code == 404 and allow_missing:
            return None
        if response.is_error:
            raise GitHubAPIError(
                f"{method} {url}: {response.status_code} {_error_message(response)}",
                status_code=response.status_code,
            )
        if not response.content:
            return None
        return response.json()

    async def get_repository(self, owner: str, repo: str) -> RepositoryInfo:
        data = await self._request("GET", f"/repos/{owner}/{repo}")
        return RepositoryInfo(
            full_name=data["full_name"],
            default_branch=data["default_branch"],
            private=data.get("private", False),
            stars=data.get("stargazers_count", 0),
        )

    async def get_branch_sha(self, owner: str, repo: str, branch: str) -> str | None:
        data = await self._request(
            "GET",
            f"/repos/{owner}/{repo}/git/ref/heads/{quote(branch)}",
            allow_missing=True,
        )
        if data is None:
            return None
        return data["object"]["sha"]

    async def get_readme(self, owner: str, repo: str, ref: str) -> FileContent | None:
        data = await self._request(
            "GET",
            f"/repos/{owner}/{repo}/readme",
            params={"ref": ref},
            allow_missing=True,
        )
        return _file_content(data)

    async def get_contents(
        self,
        owner: str,
        repo: str,
        path: str,
        ref: str | None = None,
    ) -> FileContent | None:
        params = {"ref": ref} if ref else None
        data = await self._request(
            "GET",
            f"/repos/{owner}/{repo}/contents/{quote(path)}",
            params=params,
            allow_missing=True,
        )
        if isinstance(data, list):
            # A directory listing, not a file.
            return None
        return _file_content(data)

    async def create_ref(self, owner: str, repo: str, ref: str, sha: str) -> None:
        await self._request(
            "POST",
            f"/repos/{owner}/{repo}/git/refs",
            json={"ref": ref, "sha": sha},
        )

    async def update_file(
        self,
        owner: str,
        repo: str,
        path: str,
        *,
        content: bytes,
        message: str,
        branch: str,
        sha: str,
        author_name: str,
        author_email: str,
    ) -> str:
        identity = {"name": author_name, "email": author_email}
        payload: dict[str, Any] = {
            "message": message,
            "content": base64.b64encode(content).decode("ascii"),
            "branch": branch,
            "author": identity,
            "committer": identity,
        }
        if sha:
            payload["sha"] = sha

        data = await self._request(
            "PUT",
            f"/repos/{owner}/{repo}/contents/{quote(path)}",
            json=payload,
        )
        return data["commit"]["sha"]

    async def list_pull_requests(
        self,
        owner: str,
        repo: str,
        *,
        head: str,
        base: str,
    ) -> list[PullRequest]:
        data = await self._request(
            "GET",
            f"/repos/{owner}/{repo}/pulls",
            params={"state": "open", "head": f"{owner}:{head}", "base": base, "per_page": 100},
        )
        pulls = [_pull_request(item) for item in data or []]
        return [pr for pr in pulls if pr.head_ref == head]

    async def create_pull_request(
        self,
        owner: str,
        repo: str,
        *,
        title: str,
        head: str,
        base: str,
        body: str = "",
    ) -> PullRequest:
        data = await self._request(
            "POST",
            f"/repos/{owner}/{repo}/pulls",
            json={"title": title, "head": head, "base": base, "body": body},
        )
        return _pull_request(data)

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(data, dict):
        message = data.get("message", "")
        errors = data.get("errors")
        if errors:
            message = f"{message} {errors}"
        return message
    return str(data)[:200]


def _file_content(data: dict[str, Any] | None) -> FileContent | None:
    if data is None:
        return None
    encoded = data.get("content") or ""
    if data.get("encoding", "base64") == "base64":
        content = base64.b64decode(encoded)
    else:
        content = encoded.encode("utf-8")
    return FileContent(path=data["path"], sha=data["sha"], content=content)


def _pull_request(data: dict[str, Any]) -> PullRequest:
    return PullRequest(
        number=data["number"],
        head_ref=data["head"]["ref"],
        base_ref=data["base"]["ref"],
        html_url=data.get("html_url"),
    )
