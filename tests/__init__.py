"""
Shapeshifter Test Suite.

This package contains:
- unit/: Unit tests (no external dependencies)
- integration/: Integration tests (reconciliation, SQLite, REST API)
"""
