"""Test suite for scnetprep.

Test organization:
- fixtures/: Mock data generators and test utilities
- unit/: Unit tests for individual modules, including the CLI

Run tests with:
    pytest tests/
    pytest tests/unit/
    pytest tests/ -v --tb=short
"""
