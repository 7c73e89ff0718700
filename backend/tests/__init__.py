"""
Fact Mastery Test Suite

Test Structure:
    tests/
    ├── conftest.py          # Shared fixtures and configuration
    ├── unit/                # Unit tests (isolated, no external dependencies)
    │   ├── test_progression.py        # Fact state machine
    │   ├── test_retention.py          # Retention schedule
    │   ├── test_goal_calculator.py    # Daily goal sizing and chaining
    │   ├── test_goal_tracker.py       # Credits, increments, completion signals
    │   └── ...
    └── integration/         # Integration tests (require PostgreSQL)
        ├── test_fact_store.py   # Conditional fact writes
        ├── test_goal_store.py   # Guarded goal writes
        ├── test_progress_api.py # HTTP endpoints end to end
        └── test_health.py       # Health endpoint tests

Running Tests:
    # Unit tests only (default, integration tests are deselected)
    pytest

    # Integration tests (requires Docker services)
    pytest -m integration

    # Run with coverage
    pytest --cov=factmastery --cov-report=html
"""
