"""osint-graph: storage and API backend for OSINT investigation graphs."""

__version__ = "0.4.0"
