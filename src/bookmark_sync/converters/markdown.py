"""Markdown rendering of bookmark notes.

The header is YAML frontmatter produced by PyYAML so that titles with
colons or quotes stay valid YAML.  Tags are written as ``#``-prefixed
strings, which YAML quotes because a bare ``#`` starts a comment.
"""

import yaml

from bookmark_sync.sync.models import Bookmark

from .common import header_fields, highlight_blocks, join_sections


def _quote(text: str) -> str:
    return "\n".join(
        f"> {line}" if line else ">" for line in text.split("\n")
    )


def _frontmatter(record: Bookmark) -> str:
    fields = header_fields(record)
    data: dict = {"title": fields.title}
    if fields.url:
        data["url"] = fields.url
    data["type"] = fields.type
    data["created"] = fields.created
    if fields.modified:
        data["modified"] = fields.modified
    if fields.tags:
        data["tags"] = [f"#{name}" for name in fields.tags]

    body = yaml.safe_dump(
        data,
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
        width=4096,
    )
    return f"---\n{body}---"


def render_markdown(record: Bookmark) -> str:
    """Render *record* as a Markdown document with YAML frontmatter."""
    title = record.resolved_title
    url = record.content.url
    sections = [_frontmatter(record)]

    if url:
        sections.append(f"[{title}]({url})")

    if record.highlights:
        blocks = highlight_blocks(record.highlights, _quote)
        sections.append("## Highlights\n" + "\n\n".join(blocks))

    if record.note:
        sections.append(f"## Notes\n{record.note}")

    return join_sections(sections)
