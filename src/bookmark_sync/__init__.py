"""Mirror a remote bookmark collection into a local Org/Markdown file tree."""

__version__ = "0.3.0"
