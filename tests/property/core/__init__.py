# tests/property/core/__init__.py
"""Property tests for checkpoint transitions and encoding."""
