"""Objectstore test suite.

- unit/: engines, streams, locks, multipart bookkeeping, config and CLI
- integration/: cross-process locking against a real filesystem
"""
