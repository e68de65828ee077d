"""MCP stdio server exposing PowerShell solution-inspection scripts as tools."""
