"""
Command-line interface for monopack.
"""
