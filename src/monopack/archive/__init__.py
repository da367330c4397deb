"""
Archive handling: naming, scratch space and manifest rewriting.
"""
