"""Database table models."""
