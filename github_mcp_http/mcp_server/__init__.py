"""MCP protocol plumbing: tool registry, stateless transport and session cache."""
