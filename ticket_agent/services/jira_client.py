"""Jira Cloud REST API client."""

import logging
from typing import Any

import httpx
from pydantic import BaseModel, ValidationError

from ticket_agent.core.config import settings
from ticket_agent.core.errors import DecodeError, PreconditionError, TransportError
from ticket_agent.models.jira import (
    JiraComment,
    JiraCommentsResponse,
    JiraIssue,
    JiraSearchResponse,
    JiraTransitionsResponse,
)

logger = logging.getLogger(__name__)

SEARCH_PAGE_SIZE = 50
COMMENTS_PAGE_SIZE = 100


class JiraClient:
    """Client for the Jira endpoints the orchestrator needs.

    Every call raises ``TransportError`` when Jira is unreachable or answers
    with an error status, and ``DecodeError`` when the body is not what we
    expect.
    """

    def __init__(
        self,
        domain: str,
        email: str,
        api_token: str,
        jira_status: str,
        client: httpx.Client | None = None,
    ):
        if not domain:
            raise PreconditionError("Jira domain is required")
        self.domain = domain
        self.jira_status = jira_status
        self._client = client or httpx.Client(
            base_url=f"https://{domain}/rest/api/3",
            auth=(email, api_token),
            headers={"Accept": "application/json"},
            timeout=settings.http_timeout,
        )

    def close(self) -> None:
        self._client.close()

    def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            response = self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise TransportError(f"HTTP request to Jira failed: {e}", e) from e

        if response.status_code >= 400:
            raise TransportError(
                f"Jira API returned {response.status_code} for {method} {url}",
                status_code=response.status_code,
            )
        return response

    @staticmethod
    def _decode(response: httpx.Response, model: type[BaseModel]) -> Any:
        try:
            return model.model_validate(response.json())
        except ValueError as e:
            # pydantic.ValidationError and json.JSONDecodeError are both ValueErrors
            kind = "decode" if isinstance(e, ValidationError) else "parse JSON from"
            raise DecodeError(f"Failed to {kind} Jira response: {e}", e) from e

    def search_issues(self, jql: str) -> list[JiraIssue]:
        """Run a JQL search and return every matching issue across all pages."""
        issues: list[JiraIssue] = []
        next_page_token = None

        while True:
            params = {"jql": jql, "maxResults": SEARCH_PAGE_SIZE, "fields": "*all"}
            if next_page_token:
                params["nextPageToken"] = next_page_token

            response = self._request("GET", "/search/jql", params=params)
            page = self._decode(response, JiraSearchResponse)
            issues.extend(page.issues)

            next_page_token = page.next_page_token
            if page.is_last or not next_page_token:
                break

        return issues

    def search_assigned_issues(self) -> list[JiraIssue]:
        """Issues assigned to the API user in the configured status."""
        jql = (
            f'assignee = currentUser() AND status = "{self.jira_status}" '
            "ORDER BY updated DESC"
        )
        return self.search_issues(jql)

    def get_comments(self, issue_key: str) -> list[JiraComment]:
        if not issue_key:
            raise PreconditionError("Issue key cannot be empty")

        response = self._request(
            "GET",
            f"/issue/{issue_key}/comment",
            params={"maxResults": COMMENTS_PAGE_SIZE, "orderBy": "created"},
        )
        return self._decode(response, JiraCommentsResponse).comments

    def transition_status(self, issue_key: str, status_name: str) -> None:
        """Move an issue through the workflow transition matching ``status_name``.

        The name is compared case-insensitively against both the transition
        name and its target status name.

        Raises:
            PreconditionError: If no available transition matches
        """
        if not issue_key or not status_name:
            raise PreconditionError("Issue key and status name are required")

        response = self._request("GET", f"/issue/{issue_key}/transitions")
        transitions = self._decode(response, JiraTransitionsResponse).transitions

        wanted = status_name.casefold()
        match = next(
            (
                t
                for t in transitions
                if t.name.casefold() == wanted
                or (t.to is not None and t.to.name.casefold() == wanted)
            ),
            None,
        )
        if match is None:
            available = ", ".join(t.name for t in transitions) or "none"
            raise PreconditionError(
                f"No transition to '{status_name}' for {issue_key} "
                f"(available: {available})"
            )

        self._request(
            "POST",
            f"/issue/{issue_key}/transitions",
            json={"transition": {"id": match.id}},
        )
        logger.info(f"Transitioned {issue_key} to {status_name}")

    def add_comment(self, issue_key: str, text: str) -> None:
        """Post a plain-text comment, wrapped in a single ADF paragraph."""
        if not issue_key or not text:
            raise PreconditionError("Issue key and comment text are required")

        body = {
            "type": "doc",
            "version": 1,
            "content": [
                {"type": "paragraph", "content": [{"type": "text", "text": text}]}
            ],
        }
        self._request("POST", f"/issue/{issue_key}/comment", json={"body": body})
