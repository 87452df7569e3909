"""Command line interface for omni-ai."""
