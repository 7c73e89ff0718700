"""
Integration Tests

Integration tests require running external services:
- PostgreSQL (for store and API tests)
- Redis (for the detailed health check)

Run services with: docker-compose up -d

These tests verify that all components work together correctly.
"""
