"""scoped-schemas - resolve XML schema references per project scope."""

__version__ = "0.3.0"
