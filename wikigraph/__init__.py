"""Crawl Wikipedia's most viewed articles into MySQL and browse their links as a graph."""

__version__ = "0.1.0"

__all__ = ["config", "database", "parser", "graph", "layout", "viewer"]