"""Service layer built on the integration clients."""
