"""Render merged bookmark records as Org or Markdown notes."""

from .common import (
    FORMATS,
    HeaderFields,
    header_fields,
    highlight_blocks,
    render,
)
from .markdown import render_markdown
from .org import render_org

__all__ = [
    "FORMATS",
    "HeaderFields",
    "header_fields",
    "highlight_blocks",
    "render",
    "render_markdown",
    "render_org",
]
