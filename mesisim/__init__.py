"""Simulate MESI-coherent L1 caches for four cores on a shared snooping bus."""

__version__ = "0.1.0"