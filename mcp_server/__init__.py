"""MCP tool server exposing the Edgelab engine."""
