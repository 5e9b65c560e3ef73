"""Registry enrichment proxy service."""
