"""Storage adapters implementing core ports."""

from perfwatch.adapters.storage.ring_buffer import BoundedBuffer

__all__ = ["BoundedBuffer"]
