"""HTTP transport for the execution service."""
