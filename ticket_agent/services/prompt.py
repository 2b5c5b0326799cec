"""Rendering of Jira content into the agent prompt."""

from collections.abc import Sequence
from datetime import datetime
from typing import Any

from ticket_agent.models.jira import JiraComment

# ADF nodes that end with a line break when rendered as text
BLOCK_NODE_TYPES = frozenset(
    {
        "paragraph",
        "heading",
        "bulletList",
        "orderedList",
        "listItem",
        "blockquote",
        "codeBlock",
        "panel",
        "rule",
        "table",
        "tableRow",
        "mediaSingle",
    }
)


def adf_to_text(document: Any) -> str:
    """Convert an Atlassian Document Format tree to plain text.

    Text nodes are concatenated depth-first and every block-level node is
    terminated by a newline. Plain strings pass through unchanged.
    """
    if document is None:
        return ""
    if isinstance(document, str):
        return document.strip()
    if not isinstance(document, dict):
        return ""

    parts: list[str] = []
    _render_node(document, parts)
    return "".join(parts).strip()


def _render_node(node: Any, parts: list[str]) -> None:
    if not isinstance(node, dict):
        return

    node_type = node.get("type")
    if node_type == "text":
        parts.append(node.get("text") or "")
        return
    if node_type == "hardBreak":
        parts.append("\n")
        return

    for child in node.get("content") or []:
        _render_node(child, parts)

    if node_type in BLOCK_NODE_TYPES and not (parts and parts[-1].endswith("\n")):
        parts.append("\n")


def _format_date(created: str | None) -> str:
    if not created:
        return "Unknown date"
    try:
        return datetime.fromisoformat(created).date().isoformat()
    except ValueError:
        return created[:10]


def format_comments(comments: Sequence[JiraComment]) -> str:
    if not comments:
        return "No comments."

    rendered = []
    for i, comment in enumerate(comments, 1):
        author = comment.author
        name = (author and (author.display_name or author.email_address)) or "Unknown"
        rendered.append(
            f"[{i}] {name} ({_format_date(comment.created)}):\n"
            f"{adf_to_text(comment.body)}"
        )
    return "\n\n".join(rendered)


def build_prompt(
    task_id: int,
    issue_key: str,
    summary: str,
    description: str,
    comments: str,
    branch_name: str,
    base_branch: str,
) -> str:
    """Build the instructions sent to the coding agent."""
    return f"""You are working on a Jira task. Here are the details:

**Task ID**: {task_id}
**Jira Key**: {issue_key}
**Summary**: {summary}

**Description**:
{description or "No description provided."}

**Comments**:
{comments}

---

**Instructions**:
1. You are already on a new branch named: `{branch_name}` (based on `{base_branch}`)
2. Implement the task described above
3. Commit your changes with a message that references the Jira key (e.g. "{issue_key}: <description>")
4. Push the branch to origin

When you're done, make sure all changes are committed and pushed.
"""
