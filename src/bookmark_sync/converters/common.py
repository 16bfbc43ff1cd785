"""Common types and utilities for note rendering.

Both dialects emit the same four parts in the same order:

1. a header (Org property drawer / Markdown frontmatter),
2. the primary link, omitted when the bookmark has no URL,
3. a highlights section, omitted when there are no highlights,
4. a notes section, omitted when the bookmark has no note.

``header_fields()`` and ``highlight_blocks()`` hold the shared logic so
the dialect modules only deal with syntax.
"""

from collections.abc import Callable
from dataclasses import dataclass, field

from bookmark_sync.sync.models import Bookmark, Highlight


@dataclass(frozen=True)
class HeaderFields:
    """Metadata shown at the top of every note."""

    title: str
    url: str | None
    type: str
    created: str
    modified: str | None = None
    tags: list[str] = field(default_factory=list)


def header_fields(record: Bookmark) -> HeaderFields:
    return HeaderFields(
        title=record.resolved_title,
        url=record.content.url or None,
        type=record.content.type,
        created=record.created_at or "",
        modified=record.modified_at or None,
        tags=[tag.name for tag in record.tags],
    )


def highlight_blocks(
    highlights: list[Highlight],
    quote: Callable[[str], str],
) -> list[str]:
    """Return one text block per highlight.

    A block is the quoted highlight text (when present) immediately
    followed by the highlight note (when present).  A highlight with
    neither yields an empty block.
    """
    blocks = []
    for highlight in highlights:
        parts = []
        if highlight.text:
            parts.append(quote(highlight.text))
        if highlight.note:
            parts.append(highlight.note)
        blocks.append("\n".join(parts))
    return blocks


def join_sections(sections: list[str]) -> str:
    """Join non-empty document sections with one blank line between them."""
    return "\n\n".join(s for s in sections if s) + "\n"


def _renderers() -> dict[str, Callable[[Bookmark], str]]:
    from .markdown import render_markdown
    from .org import render_org

    return {"org": render_org, "markdown": render_markdown}


FORMATS: tuple[str, ...] = ("org", "markdown")


def render(record: Bookmark, fmt: str) -> str:
    """Render a merged bookmark record in the *fmt* dialect.

    Raises:
        ValueError: If *fmt* is not ``org`` or ``markdown``.
    """
    renderers = _renderers()
    if fmt not in renderers:
        raise ValueError(
            f"Unknown file format '{fmt}': expected one of {list(FORMATS)}"
        )
    return renderers[fmt](record)
