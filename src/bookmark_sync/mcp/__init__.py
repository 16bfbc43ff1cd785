"""MCP (Model Context Protocol) surface for bookmark-sync."""
