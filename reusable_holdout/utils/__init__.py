"""
Shared helpers: exception hierarchy, error wrapping, constants and DataFrame I/O.
"""
