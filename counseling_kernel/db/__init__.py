"""Database infrastructure: declarative base and engine/session management."""
