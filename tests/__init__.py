"""
batchcache Test Suite
=====================

Test Organization
-----------------
- tests/unit/          : Fast unit tests against the in-memory recording store
- tests/integration/   : SqlAlchemyStore and DatabaseService against SQLite
- tests/fixtures/      : Test entities, ORM models and the recording store

Testing Philosophy
------------------
- Use pytest markers to categorize and selectively run tests
- Follow AAA pattern: Arrange, Act, Assert
"""
