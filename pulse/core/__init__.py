"""Core types, catalog and configuration for pulse."""
