"""Adapters connecting the core to frameworks and storage."""
