"""kue: relationship scoring and network traversal service."""

__version__ = "0.1.0"
