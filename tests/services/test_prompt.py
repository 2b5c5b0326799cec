"""Tests for prompt rendering."""

from ticket_agent.models import JiraComment
from ticket_agent.services.prompt import adf_to_text, build_prompt, format_comments
from tests.conftest import adf_block, adf_doc


def test_adf_paragraphs_are_separated_by_newlines():
    """Test two paragraphs render on two lines."""
    document = adf_doc(adf_block("paragraph", "Hello"), adf_block("paragraph", "World"))

    assert adf_to_text(document) == "Hello\nWorld"


def test_adf_paragraph_then_heading():
    document = adf_doc(adf_block("paragraph", "Hello"), adf_block("heading", "World"))

    assert adf_to_text(document) == "Hello\nWorld"


def test_adf_nested_blocks():
    """Test nested list items do not produce blank lines."""
    document = adf_doc(
        adf_block("heading", "Steps"),
        {
            "type": "bulletList",
            "content": [
                {"type": "listItem", "content": [adf_block("paragraph", "one")]},
                {"type": "listItem", "content": [adf_block("paragraph", "two")]},
            ],
        },
    )

    assert adf_to_text(document) == "Steps\none\ntwo"


def test_adf_inline_text_and_hard_break():
    """Test inline nodes concatenate and hard breaks add a newline."""
    document = adf_doc(
        {
            "type": "paragraph",
            "content": [
                {"type": "text", "text": "Use "},
                {"type": "text", "text": "bold", "marks": [{"type": "strong"}]},
                {"type": "hardBreak"},
                {"type": "text", "text": "next line"},
            ],
        }
    )

    assert adf_to_text(document) == "Use bold\nnext line"


def test_adf_non_document_inputs():
    """Test missing and plain-string descriptions."""
    assert adf_to_text(None) == ""
    assert adf_to_text("  already text \n") == "already text"
    assert adf_to_text(42) == ""
    assert adf_to_text(adf_doc()) == ""


def test_format_comments_empty():
    assert format_comments([]) == "No comments."


def test_format_comments():
    """Test comments are numbered with author and date."""
    comments = [
        JiraComment.model_validate(
            {
                "id": "1",
                "author": {"displayName": "Ada Lovelace"},
                "created": "2024-03-01T10:00:00.000+0000",
                "body": adf_doc(adf_block("paragraph", "Please add tests")),
            }
        ),
        JiraComment.model_validate(
            {"id": "2", "body": "plain", "author": {"emailAddress": "bob@example.com"}}
        ),
        JiraComment.model_validate({"id": "3", "body": None}),
    ]

    assert format_comments(comments) == (
        "[1] Ada Lovelace (2024-03-01):\nPlease add tests\n\n"
        "[2] bob@example.com (Unknown date):\nplain\n\n"
        "[3] Unknown (Unknown date):\n"
    )


def test_build_prompt():
    """Test the prompt carries the issue details and branch instructions."""
    prompt = build_prompt(
        task_id=7,
        issue_key="PROJ-1",
        summary="Add a health endpoint",
        description="",
        comments="No comments.",
        branch_name="feature/PROJ-1-7",
        base_branch="main",
    )

    assert "**Task ID**: 7" in prompt
    assert "**Jira Key**: PROJ-1" in prompt
    assert "**Summary**: Add a health endpoint" in prompt
    assert "No description provided." in prompt
    assert "No comments." in prompt
    assert "`feature/PROJ-1-7` (based on `main`)" in prompt
    assert "Push the branch to origin" in prompt
