"""MCP tools for pg-provision."""

from src.tools.health import register_health_tool, snapshot_payload

__all__ = [
    "register_health_tool",
    "snapshot_payload",
]
