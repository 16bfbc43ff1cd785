"""Org-mode rendering of bookmark notes.

Example output::

    * Title
    :PROPERTIES:
    :URL: https://example.com
    :TYPE: link
    :CREATED: 2024-03-20T12:00:00.000Z
    :MODIFIED: 2024-03-21T08:00:00.000Z
    :TAGS: reading python
    :END:

    [[https://example.com][Title]]

    ** Highlights
    #+begin_quote
    Highlighted text
    #+end_quote
    Highlight note

    ** Notes
    Free-form note
"""

from bookmark_sync.sync.models import Bookmark

from .common import header_fields, highlight_blocks, join_sections


def _quote(text: str) -> str:
    return f"#+begin_quote\n{text}\n#+end_quote"


def _properties(record: Bookmark) -> str:
    fields = header_fields(record)
    lines = [f"* {fields.title}", ":PROPERTIES:"]
    if fields.url:
        lines.append(f":URL: {fields.url}")
    lines.append(f":TYPE: {fields.type}")
    lines.append(f":CREATED: {fields.created}")
    if fields.modified:
        lines.append(f":MODIFIED: {fields.modified}")
    if fields.tags:
        lines.append(f":TAGS: {' '.join(fields.tags)}")
    lines.append(":END:")
    return "\n".join(lines)


def render_org(record: Bookmark) -> str:
    """Render *record* as an Org document."""
    title = record.resolved_title
    url = record.content.url
    sections = [_properties(record)]

    if url:
        sections.append(f"[[{url}][{title}]]")

    if record.highlights:
        blocks = highlight_blocks(record.highlights, _quote)
        sections.append("** Highlights\n" + "\n\n".join(blocks))

    if record.note:
        sections.append(f"** Notes\n{record.note}")

    return join_sections(sections)
