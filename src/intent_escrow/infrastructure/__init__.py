"""Storage backends: in-memory state and SQLAlchemy async database."""
