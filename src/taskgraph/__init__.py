# src/taskgraph/__init__.py

"""Task / category management backed by a Neo4j graph."""

__version__ = "0.1.0"
