"""
zkengine Test Suite
===================

Test organization:
- tests/unit/          - Engine unit tests (padding, circuit, setup, prover, service)
- tests/services/      - HTTP service tests

Run tests:
    pytest                          # All tests
    pytest tests/unit               # Unit tests only
    pytest --cov=zkengine           # With coverage
"""
