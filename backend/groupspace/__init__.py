"""Shared group workspace state: authoritative store and client reconciler."""

__version__ = "0.1.0"
