"""Shared helpers: filesystem, binaries on PATH, signal-aware async runner."""
