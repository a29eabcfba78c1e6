"""alpine-brew — prepare official Alpine Linux Docker image sources."""

__version__ = "0.1.0"
