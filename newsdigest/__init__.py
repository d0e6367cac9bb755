"""Local news digest: ingest, deduplicate, rewrite and publish regional news."""

__version__ = "0.1.0"
