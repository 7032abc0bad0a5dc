"""Command line interface for scoped-schemas."""
