"""Service layer: release pipeline steps."""
