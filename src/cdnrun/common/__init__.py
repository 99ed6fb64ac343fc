"""Shared helpers: structured logging, HTTP and caching."""
