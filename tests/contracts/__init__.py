"""Tests for the contracts package.

Unit tests for the leaf value types shared by core, engine and storage
adapters: checkpoint values, status enums, results and errors.
"""
