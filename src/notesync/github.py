"""Remote backed by a GitHub repository through the Git Data REST API."""

from __future__ import annotations

import base64
import logging
import unicodedata
from datetime import datetime, timezone
from typing import Any, Mapping
from urllib.parse import quote

import requests

from .exceptions import ConcurrentModificationError, RemoteError
from .remote import Remote, RemoteRelease
from .tree import RemoteTreeEntry

logger = logging.getLogger(__name__)

GITHUB_API_BASE_URL = "https://api.github.com"
GITHUB_API_VERSION = "2022-11-28"

_ERROR_KINDS = {
    401: "invalid_token",
    403: "rate_limited",
    404: "not_found",
}


def _encode_path(path: str) -> str:
    """NFC-normalize and URL-quote each segment of a repo path."""
    return "/".join(quote(seg, safe="") for seg in unicodedata.normalize("NFC", path).split("/"))


class GitHubRemote(Remote):
    """A branch of a GitHub repository.

    Args:
        owner: Repository owner (user or organization).
        repo: Repository name.
        branch: Branch to sync (default ``"main"``).
        token: Personal access token with contents write permission.
        session: Optional preconfigured :class:`requests.Session`.
        timeout: ``(connect, read)`` timeout in seconds.
    """

    def __init__(
        self,
        owner: str,
        repo: str,
        branch: str = "main",
        token: str | None = None,
        *,
        session: requests.Session | None = None,
        base_url: str = GITHUB_API_BASE_URL,
        timeout: tuple[float, float] = (10, 60),
    ):
        self.owner = owner
        self.repo = repo
        self.branch = branch
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
        })
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"

    def __repr__(self) -> str:
        return f"GitHubRemote({self.owner}/{self.repo}@{self.branch})"

    @property
    def key(self) -> str:
        return f"github:{self.owner}/{self.repo}@{self.branch}"

    @property
    def _repo_path(self) -> str:
        return f"/repos/{self.owner}/{self.repo}"

    # -- transport ---------------------------------------------------------

    def _request(self, method: str, endpoint: str, **kwargs) -> Any:
        url = f"{self.base_url}{endpoint}"
        logger.debug("%s %s", method, url)
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            raise RemoteError(f"{method} {endpoint} failed: {exc}", kind="network_error") from exc

        remaining = response.headers.get("X-RateLimit-Remaining")
        if remaining is not None and remaining.isdigit() and int(remaining) == 0 and not response.ok:
            reset = int(response.headers.get("X-RateLimit-Reset", "0") or 0)
            resets_at = datetime.fromtimestamp(reset, tz=timezone.utc).isoformat()
            raise RemoteError(
                f"Rate limit exceeded. Resets at {resets_at}",
                status_code=response.status_code, kind="rate_limited",
            )

        if not response.ok:
            kind = _ERROR_KINDS.get(response.status_code, "network_error")
            raise RemoteError(
                f"{method} {endpoint} returned {response.status_code}: {response.text}",
                status_code=response.status_code, kind=kind,
            )

        if response.status_code == 204 or not response.content:
            return {}
        return response.json()

    # -- reads -------------------------------------------------------------

    def resolve_ref(self) -> str | None:
        try:
            data = self._request("GET", f"{self._repo_path}/git/ref/heads/{quote(self.branch)}")
        except RemoteError as exc:
            # 409: repository is empty
            if exc.status_code == 409:
                return None
            # 404 is also what a missing repo or a token without access gets
            if exc.status_code == 404:
                self._check_repository()
                return None
            raise
        return data["object"]["sha"]

    def _check_repository(self) -> None:
        """Raise ``not_found`` unless the repository itself is reachable."""
        try:
            self._request("GET", self._repo_path)
        except RemoteError as exc:
            if exc.status_code == 404:
                raise RemoteError(
                    f"Repository {self.owner}/{self.repo} not found "
                    "or not accessible with this token",
                    status_code=404, kind="not_found",
                ) from exc
            raise

    def get_tree(self, ref: str) -> list[RemoteTreeEntry]:
        data = self._request(
            "GET", f"{self._repo_path}/git/trees/{ref}", params={"recursive": "1"},
        )
        if data.get("truncated"):
            raise RemoteError(
                f"Tree listing for {ref} was truncated by the server", kind="truncated",
            )
        return [RemoteTreeEntry.from_listing(item) for item in data.get("tree", [])]

    def get_file_content(self, path: str, ref: str | None = None) -> bytes | None:
        params = {"ref": ref} if ref else None
        try:
            data = self._request(
                "GET", f"{self._repo_path}/contents/{_encode_path(path)}", params=params,
            )
        except RemoteError as exc:
            if exc.status_code == 404:
                return None
            raise
        if not isinstance(data, dict) or data.get("type") != "file" or "content" not in data:
            return None
        return base64.b64decode(data["content"].replace("\n", ""))

    def get_latest_release(self, owner: str | None = None, repo: str | None = None) -> RemoteRelease | None:
        """Return the latest release of *owner*/*repo* (default: this repo)."""
        owner = owner or self.owner
        repo = repo or self.repo
        try:
            data = self._request("GET", f"/repos/{owner}/{repo}/releases/latest")
        except RemoteError as exc:
            if exc.status_code == 404:
                return None
            raise
        return RemoteRelease(
            tag=data["tag_name"],
            name=data.get("name") or data["tag_name"],
            published_at=data.get("published_at") or "",
            body=data.get("body") or "",
        )

    # -- writes ------------------------------------------------------------

    def _create_blob(self, content: bytes) -> str:
        data = self._request("POST", f"{self._repo_path}/git/blobs", json={
            "content": base64.b64encode(content).decode("ascii"),
            "encoding": "base64",
        })
        return data["sha"]

    def _base_tree(self, base_commit: str) -> str:
        data = self._request("GET", f"{self._repo_path}/git/commits/{base_commit}")
        return data["tree"]["sha"]

    def create_tree(self, base_commit: str | None, changes: Mapping[str, bytes | None]) -> str:
        items = []
        for path, content in sorted(changes.items()):
            sha = None if content is None else self._create_blob(content)
            items.append({"path": path, "mode": "100644", "type": "blob", "sha": sha})
        body: dict[str, Any] = {"tree": items}
        if base_commit is not None:
            body["base_tree"] = self._base_tree(base_commit)
        data = self._request("POST", f"{self._repo_path}/git/trees", json=body)
        return data["sha"]

    def create_commit(self, message: str, tree: str, parents: list[str]) -> str:
        data = self._request("POST", f"{self._repo_path}/git/commits", json={
            "message": message,
            "tree": tree,
            "parents": parents,
        })
        return data["sha"]

    def update_ref(self, new_commit: str, expected: str | None) -> None:
        if expected is None:
            try:
                self._request("POST", f"{self._repo_path}/git/refs", json={
                    "ref": f"refs/heads/{self.branch}",
                    "sha": new_commit,
                })
            except RemoteError as exc:
                if exc.status_code == 422:
                    raise ConcurrentModificationError(
                        f"Branch {self.branch!r} was created concurrently",
                        status_code=422, kind="stale",
                    ) from exc
                raise
            return

        # No compare-and-swap on GitHub refs.  new_commit's only parent is
        # expected, so a non-forced (fast-forward only) update is rejected
        # once the branch has moved past expected.
        try:
            self._request(
                "PATCH", f"{self._repo_path}/git/refs/heads/{quote(self.branch)}",
                json={"sha": new_commit, "force": False},
            )
        except RemoteError as exc:
            if exc.status_code == 422:
                raise ConcurrentModificationError(
                    f"Branch {self.branch!r} no longer points at {expected}",
                    status_code=422, kind="stale",
                ) from exc
            raise
