"""Core business logic — scoring, banding, filters, API client, and data models.

This module is framework-agnostic. It has no dependency on MCP, FastMCP,
or the local session store.
"""
