"""Pydantic models for the subset of the Jira Cloud REST API we consume.

Unknown fields are kept (``extra="allow"``) so an issue can be dumped back to
JSON in full for the task snapshot.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class JiraModel(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)


class JiraUser(JiraModel):
    account_id: str | None = Field(default=None, alias="accountId")
    display_name: str | None = Field(default=None, alias="displayName")
    email_address: str | None = Field(default=None, alias="emailAddress")


class JiraStatus(JiraModel):
    name: str
    id: str | None = None


class JiraProject(JiraModel):
    id: str
    key: str
    name: str


class JiraIssueFields(JiraModel):
    summary: str
    # ADF document or plain string
    description: Any = None
    status: JiraStatus
    priority: JiraStatus | None = None
    assignee: JiraUser | None = None
    reporter: JiraUser | None = None
    project: JiraProject | None = None
    created: str | None = None
    updated: str | None = None
    labels: list[str] = Field(default_factory=list)


class JiraIssue(JiraModel):
    id: str
    key: str
    self_url: str | None = Field(default=None, alias="self")
    fields: JiraIssueFields

    @property
    def status_name(self) -> str:
        return self.fields.status.name

    def to_snapshot(self) -> str:
        """Serialize the issue, including unmodelled fields, back to Jira JSON."""
        return self.model_dump_json(by_alias=True, exclude_none=True)


class JiraSearchResponse(JiraModel):
    issues: list[JiraIssue]
    next_page_token: str | None = Field(default=None, alias="nextPageToken")
    is_last: bool | None = Field(default=None, alias="isLast")


class JiraComment(JiraModel):
    id: str
    # ADF document or plain string
    body: Any = None
    author: JiraUser | None = None
    created: str | None = None
    updated: str | None = None


class JiraCommentsResponse(JiraModel):
    comments: list[JiraComment]
    total: int | None = None
    max_results: int | None = Field(default=None, alias="maxResults")
    start_at: int | None = Field(default=None, alias="startAt")


class JiraTransition(JiraModel):
    id: str
    name: str
    to: JiraStatus | None = None


class JiraTransitionsResponse(JiraModel):
    transitions: list[JiraTransition]
