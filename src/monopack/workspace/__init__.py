"""
Workspace model: discovered packages and the dependency edges between them.
"""
