# tests/property/__init__.py
"""Property-based tests for durastep.

Test categories:
- canonical/: Fingerprint determinism and key-order independence
- core/: Checkpoint transitions and row encoding
"""
