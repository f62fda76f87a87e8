"""
Questline test suite.

- tests/unit/         : fast tests; service tests use a temporary SQLite file
- tests/integration/  : PostgreSQL via testcontainers (`-m integration`)
"""
