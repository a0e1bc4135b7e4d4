"""Service wiring. Import `ServiceContainer` from `netrunner.core.services.container`."""
