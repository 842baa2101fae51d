"""Interfaces: Typer CLI and MCP stdio server."""
