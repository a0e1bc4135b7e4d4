"""Domain layer: closed enumerations and rich domain models."""
