"""docpush: sync a documentation tree to object storage."""

__version__ = "0.4.0"
