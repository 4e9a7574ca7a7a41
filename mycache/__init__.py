"""Distributed in-memory key/value cache with LRU eviction, peer lookup over HTTP and persistence."""

__version__ = "0.1.0"