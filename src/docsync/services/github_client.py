"""Async GitHub API client covering content, branches, PRs and review comments."""

import base64
from dataclasses import dataclass
from typing import Any

import httpx

from ..config import settings
from ..schemas.github import (
    ActivePullRequest,
    RemoteReaction,
    RemoteReviewComment,
    ThreadInfo,
)

THREADS_QUERY = """
query($owner: String!, $repo: String!, $pullNumber: Int!) {
  repository(owner: $owner, name: $repo) {
    pullRequest(number: $pullNumber) {
      reviewThreads(first: 100) {
        nodes {
          id
          isResolved
          comments(first: 100) {
            nodes {
              databaseId
              reactions(first: 100) {
                nodes { databaseId content user { login } }
              }
            }
          }
        }
      }
    }
  }
}
"""

RESOLVE_THREAD_MUTATION = """
mutation($threadId: ID!) {
  resolveReviewThread(input: { threadId: $threadId }) { thread { id } }
}
"""

UNRESOLVE_THREAD_MUTATION = """
mutation($threadId: ID!) {
  unresolveReviewThread(input: { threadId: $threadId }) { thread { id } }
}
"""

# GraphQL reports reaction content as an enum
_GRAPHQL_REACTIONS = {
    "THUMBS_UP": "+1",
    "THUMBS_DOWN": "-1",
    "LAUGH": "laugh",
    "CONFUSED": "confused",
    "HEART": "heart",
    "HOORAY": "hooray",
    "ROCKET": "rocket",
    "EYES": "eyes",
}


class GitHubGraphQLError(Exception):
    """The GraphQL endpoint answered with an ``errors`` payload."""


@dataclass
class FileContent:
    """Decoded file content at a ref."""

    content: str
    sha: str
    encoding: str = "utf-8"


@dataclass
class CommitResult:
    """Result of a content update."""

    sha: str  # New blob sha of the file
    commit_sha: str


@dataclass
class Branch:
    """A branch and its head commit."""

    name: str
    sha: str


@dataclass
class CreatedPullRequest:
    number: int
    html_url: str


class GitHubClient:
    """Async GitHub API client with token auth."""

    def __init__(self, token: str | None = None, base_url: str | None = None):
        self.token = token if token is not None else settings.github_token
        self.base_url = base_url or settings.github_api_url
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "GitHubClient":
        await self.open()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    async def open(self) -> None:
        if self._client is not None:
            return
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "Authorization": f"Bearer {self.token}",
                "Accept": "application/vnd.github.v3+json",
                "X-GitHub-Api-Version": "2022-11-28",
            },
            timeout=30.0,
        )

    async def aclose(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _paginate(self, url: str, params: dict[str, Any] | None = None) -> list[Any]:
        assert self._client is not None
        items: list[Any] = []
        page = 1
        while True:
            response = await self._client.get(
                url,
                params={**(params or {}), "per_page": 100, "page": page},
            )
            response.raise_for_status()
            batch = response.json()
            if not batch:
                break
            items.extend(batch)
            if len(batch) < 100:
                break
            page += 1
        return items

    async def graphql(self, query: str, variables: dict[str, Any]) -> dict[str, Any]:
        """Run a GraphQL query or mutation and return its ``data``."""
        assert self._client is not None
        response = await self._client.post(
            "/graphql",
            json={"query": query, "variables": variables},
        )
        response.raise_for_status()
        payload = response.json()
        if payload.get("errors"):
            raise GitHubGraphQLError(payload["errors"][0].get("message", "GraphQL error"))
        return payload.get("data") or {}

    # Content

    async def get_content(
        self,
        owner: str,
        repo: str,
        path: str,
        ref: str,
    ) -> FileContent:
        """Get decoded file content and blob sha at a ref."""
        assert self._client is not None
        response = await self._client.get(
            f"/repos/{owner}/{repo}/contents/{path}",
            params={"ref": ref},
        )
        response.raise_for_status()
        data = response.json()
        raw = data.get("content", "")
        if data.get("encoding") == "base64":
            text = base64.b64decode(raw.replace("\n", "")).decode("utf-8")
        else:
            text = raw
        return FileContent(content=text, sha=data["sha"])

    async def update_content(
        self,
        owner: str,
        repo: str,
        path: str,
        content: str,
        message: str,
        sha: str | None,
        branch: str,
    ) -> CommitResult:
        """Commit new file content to a branch."""
        assert self._client is not None
        payload: dict[str, Any] = {
            "message": message,
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
            "branch": branch,
        }
        if sha:
            payload["sha"] = sha

        response = await self._client.put(
            f"/repos/{owner}/{repo}/contents/{path}",
            json=payload,
        )
        response.raise_for_status()
        data = response.json()
        return CommitResult(sha=data["content"]["sha"], commit_sha=data["commit"]["sha"])

    # Branches

    async def list_branches(self, owner: str, repo: str) -> list[Branch]:
        data = await self._paginate(f"/repos/{owner}/{repo}/branches")
        return [Branch(name=b["name"], sha=b["commit"]["sha"]) for b in data]

    async def create_branch(self, owner: str, repo: str, name: str, from_sha: str) -> None:
        assert self._client is not None
        response = await self._client.post(
            f"/repos/{owner}/{repo}/git/refs",
            json={"ref": f"refs/heads/{name}", "sha": from_sha},
        )
        response.raise_for_status()

    # Pull requests

    async def create_pull_request(
        self,
        owner: str,
        repo: str,
        title: str,
        body: str,
        head: str,
        base: str,
    ) -> CreatedPullRequest:
        assert self._client is not None
        response = await self._client.post(
            f"/repos/{owner}/{repo}/pulls",
            json={"title": title, "body": body, "head": head, "base": base},
        )
        response.raise_for_status()
        data = response.json()
        return CreatedPullRequest(number=data["number"], html_url=data["html_url"])

    async def find_open_pull_request(
        self,
        owner: str,
        repo: str,
        branch: str,
    ) -> ActivePullRequest | None:
        """Return the open PR whose head is ``branch``, if any."""
        assert self._client is not None
        response = await self._client.get(
            f"/repos/{owner}/{repo}/pulls",
            params={"state": "open", "head": f"{owner}:{branch}", "per_page": 1},
        )
        response.raise_for_status()
        pulls = response.json()
        if not pulls:
            return None
        pr = pulls[0]
        return ActivePullRequest(
            number=pr["number"],
            head_sha=pr["head"]["sha"],
            base_ref=pr["base"]["ref"],
            html_url=pr["html_url"],
        )

    # Review comments

    async def list_review_comments(
        self,
        owner: str,
        repo: str,
        pr_number: int,
        path: str | None = None,
    ) -> list[RemoteReviewComment]:
        data = await self._paginate(f"/repos/{owner}/{repo}/pulls/{pr_number}/comments")
        comments = [RemoteReviewComment.model_validate(c) for c in data]
        if path:
            return [c for c in comments if c.path == path]
        return comments

    async def create_review_comment(
        self,
        owner: str,
        repo: str,
        pr_number: int,
        body: str,
        commit_id: str,
        path: str,
        line: int,
        start_line: int | None = None,
    ) -> RemoteReviewComment:
        """Create a line-anchored review comment (multi-line when start_line differs)."""
        assert self._client is not None
        payload: dict[str, Any] = {
            "body": body,
            "commit_id": commit_id,
            "path": path,
            "line": line,
        }
        if start_line and start_line != line:
            payload["start_line"] = start_line
            payload["start_side"] = "RIGHT"
            payload["side"] = "RIGHT"

        response = await self._client.post(
            f"/repos/{owner}/{repo}/pulls/{pr_number}/comments",
            json=payload,
        )
        response.raise_for_status()
        return RemoteReviewComment.model_validate(response.json())

    async def reply_to_review_comment(
        self,
        owner: str,
        repo: str,
        pr_number: int,
        comment_id: int,
        body: str,
    ) -> RemoteReviewComment:
        assert self._client is not None
        response = await self._client.post(
            f"/repos/{owner}/{repo}/pulls/{pr_number}/comments/{comment_id}/replies",
            json={"body": body},
        )
        response.raise_for_status()
        return RemoteReviewComment.model_validate(response.json())

    async def update_review_comment(
        self,
        owner: str,
        repo: str,
        comment_id: int,
        body: str,
    ) -> RemoteReviewComment:
        assert self._client is not None
        response = await self._client.patch(
            f"/repos/{owner}/{repo}/pulls/comments/{comment_id}",
            json={"body": body},
        )
        response.raise_for_status()
        return RemoteReviewComment.model_validate(response.json())

    async def delete_review_comment(self, owner: str, repo: str, comment_id: int) -> None:
        assert self._client is not None
        response = await self._client.delete(
            f"/repos/{owner}/{repo}/pulls/comments/{comment_id}"
        )
        response.raise_for_status()

    # Reactions

    async def add_reaction(
        self,
        owner: str,
        repo: str,
        comment_id: int,
        reaction: str,
    ) -> None:
        """Add reaction to a review comment (+1, eyes, rocket, etc.)."""
        assert self._client is not None
        response = await self._client.post(
            f"/repos/{owner}/{repo}/pulls/comments/{comment_id}/reactions",
            json={"content": reaction},
        )
        response.raise_for_status()

    async def list_reactions(
        self,
        owner: str,
        repo: str,
        comment_id: int,
    ) -> list[RemoteReaction]:
        data = await self._paginate(f"/repos/{owner}/{repo}/pulls/comments/{comment_id}/reactions")
        return [RemoteReaction.model_validate(r) for r in data]

    async def delete_reaction(
        self,
        owner: str,
        repo: str,
        comment_id: int,
        reaction_id: int,
    ) -> None:
        assert self._client is not None
        response = await self._client.delete(
            f"/repos/{owner}/{repo}/pulls/comments/{comment_id}/reactions/{reaction_id}"
        )
        response.raise_for_status()

    # Review threads (GraphQL only)

    async def fetch_thread_details(
        self,
        owner: str,
        repo: str,
        pr_number: int,
    ) -> dict[int, ThreadInfo]:
        """Map each review comment's database id to its thread details."""
        data = await self.graphql(
            THREADS_QUERY,
            {"owner": owner, "repo": repo, "pullNumber": pr_number},
        )
        threads = data["repository"]["pullRequest"]["reviewThreads"]["nodes"]

        result: dict[int, ThreadInfo] = {}
        for thread in threads:
            for comment in thread["comments"]["nodes"]:
                reactions = [
                    RemoteReaction(
                        id=r["databaseId"],
                        content=_GRAPHQL_REACTIONS.get(r["content"], r["content"].lower()),
                        user={"login": r["user"]["login"]} if r.get("user") else None,
                    )
                    for r in comment["reactions"]["nodes"]
                ]
                result[comment["databaseId"]] = ThreadInfo(
                    thread_id=thread["id"],
                    is_resolved=thread["isResolved"],
                    reactions=reactions,
                )
        return result

    async def resolve_thread(self, thread_id: str) -> None:
        await self.graphql(RESOLVE_THREAD_MUTATION, {"threadId": thread_id})

    async def unresolve_thread(self, thread_id: str) -> None:
        await self.graphql(UNRESOLVE_THREAD_MUTATION, {"threadId": thread_id})
