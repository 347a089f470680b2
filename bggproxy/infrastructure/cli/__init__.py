"""Command line presentation helpers."""
