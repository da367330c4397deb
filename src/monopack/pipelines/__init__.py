"""
Packing pipeline and the task queue it runs on.
"""
