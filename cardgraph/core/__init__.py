"""Core storage and search collaborators used by the context engine."""
