"""Domain modules (business logic layer)."""
