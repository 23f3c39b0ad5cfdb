"""
Tests for authentication app.

- factories.py: UserFactory, shared by engagement and settlement tests
- test_managers.py: email-based user creation
"""
