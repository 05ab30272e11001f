"""Integrations with collaborating services, and the shared limiter/issuer."""
