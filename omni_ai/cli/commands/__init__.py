"""CLI command modules discovered by the registry."""
