"""
Vouch Verifier Test Suite
=========================

Test organization:
- tests/unit/      - Unit tests for the verification core (mock engine)
- tests/services/  - HTTP API tests against the in-process app

Run tests:
    pytest                          # All tests
    pytest tests/unit               # Unit tests only
    pytest --cov=shared             # With coverage
"""
