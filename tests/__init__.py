"""
Netrunner Engine Test Suite
===========================

Test Organization
-----------------
- tests/unit/          : Fast unit tests over the in-memory store
- tests/unit/domain/   : Pure domain model tests
- tests/integration/   : SQL store tests with testcontainers (real PostgreSQL)
- tests/factories.py   : Frozen clock, scripted random source, item factories

Testing Philosophy
------------------
- Unit tests: fast and isolated, with injected clock and rng
- Integration tests: slower, exercise the real database behaviour
- Use pytest markers to categorize and selectively run tests
- Follow AAA pattern: Arrange, Act, Assert
"""
