"""
monopack: pack monorepo workspaces into archives that reference each other locally.
"""

__version__ = "0.1.0"
