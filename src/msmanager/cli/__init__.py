"""Command line interface for msmanager."""
