"""Service layer for fact progression and daily goals."""
