"""
Tests for authentication app.

This package contains test modules for:
- test_models.py: User, Profile and manager tests
- test_identity.py: Bearer credential verification tests

Usage:
    pytest authentication/tests/
    pytest authentication/tests/test_identity.py
"""
