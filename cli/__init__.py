"""Command-line interface for osint-graph."""
