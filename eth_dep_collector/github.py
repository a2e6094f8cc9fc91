"""
GitHub access for the collector.

Raw files come from raw.githubusercontent.com (no API quota, no 1MB cap);
release tags and code search go through the REST API with a token.
"""

import re
from urllib.parse import quote, unquote

from eth_dep_collector.config import get_github_token
from eth_dep_collector.http_client import (
    FetchError,
    MissingFileError,
    _get_async_http_client,
    check_response,
    with_retry,
)

GITHUB_API = "https://api.github.com"
GITHUB_RAW = "https://raw.githubusercontent.com"
GITHUB_WEB = "https://github.com"

# Ref used when a repository has no published release
UNPINNED_REF = "HEAD"

SEARCH_PAGE_SIZE = 30

_TAG_LOCATION_RE = re.compile(r"/releases/tag/([^/]+)$")


class GitHubSource:
    """Source host for client repositories on GitHub."""

    def __init__(self, token: str | None = None):
        """
        Initialize the GitHub source.

        Args:
            token: GitHub Personal Access Token. If not provided, reads from
                   GITHUB_TOKEN environment variable.

        Raises:
            ValueError: If token is not provided and GITHUB_TOKEN env var is not set
        """
        self.token = token or get_github_token()
        if not self.token:
            raise ValueError(
                "GITHUB_TOKEN is required to collect dependencies.\n"
                "\n"
                "Code search needs an authenticated request:\n"
                "1. Create a GitHub Personal Access Token (no scopes needed):\n"
                "   https://github.com/settings/tokens/new\n"
                "2. Set the token:\n"
                "   export GITHUB_TOKEN='your_token_here'  # Linux/macOS\n"
                "   or add to your .env file: GITHUB_TOKEN=your_token_here\n"
            )

    def _headers(self, accept: str = "application/vnd.github+json") -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Accept": accept,
            "X-GitHub-Api-Version": "2022-11-28",
        }

    async def fetch_raw(self, repo: str, ref: str, path: str) -> str:
        """
        Fetch a file at a ref.

        Raises:
            MissingFileError: If the file does not exist at that ref.
            FetchError: If retries are exhausted.
        """
        url = f"{GITHUB_RAW}/{repo}/{quote(ref, safe='')}/{path}"

        async def _fetch() -> str:
            client = await _get_async_http_client()
            response = await client.get(url)
            check_response(response, f"fetch {repo}@{ref}:{path}")
            return response.text

        return await with_retry(_fetch)

    async def get_latest_tag(self, repo: str) -> str | None:
        """
        Tag of the latest release, or None when the repository has none.

        Organizations enforcing SAML SSO reject token requests with 401/403;
        the public ``/releases/latest`` redirect is used for them instead.
        """
        url = f"{GITHUB_API}/repos/{repo}/releases/latest"

        async def _fetch() -> str | None:
            client = await _get_async_http_client()
            response = await client.get(url, headers=self._headers())
            if response.status_code in (401, 403) and "rate limit" not in response.text.lower():
                return await self._latest_tag_from_redirect(repo)
            try:
                check_response(response, f"latest release of {repo}")
            except MissingFileError:
                return None
            return response.json()["tag_name"]

        return await with_retry(_fetch)

    async def _latest_tag_from_redirect(self, repo: str) -> str:
        client = await _get_async_http_client()
        response = await client.get(
            f"{GITHUB_WEB}/{repo}/releases/latest", follow_redirects=False
        )
        match = _TAG_LOCATION_RE.search(response.headers.get("location", ""))
        if not match:
            raise FetchError(f"latest release of {repo}: HTTP {response.status_code}")
        return unquote(match.group(1))

    async def search_code(self, repo: str, query: str) -> list[str]:
        """
        Paths of files in ``repo`` matching a code search query.

        A 422 response means the query has no results and returns an empty
        list; any other failure is raised after retry.
        """
        url = f"{GITHUB_API}/search/code"
        params = {"q": f"{query} repo:{repo}", "per_page": SEARCH_PAGE_SIZE}

        async def _search() -> list[str]:
            client = await _get_async_http_client()
            response = await client.get(
                url,
                params=params,
                headers=self._headers("application/vnd.github.v3.text-match+json"),
            )
            if response.status_code == 422:
                return []
            check_response(response, f"code search {query!r} in {repo}")
            return [item["path"] for item in response.json().get("items", [])]

        return await with_retry(_search)
