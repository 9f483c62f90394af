"""Shared building blocks: logging, errors, events and scheduling."""
