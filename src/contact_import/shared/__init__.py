"""
Shared utilities: logging, exceptions, database access.
"""
