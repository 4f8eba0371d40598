# tests/property/canonical/__init__.py
"""Property tests for canonical JSON and step-input fingerprints."""
