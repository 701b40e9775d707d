"""
Shared error handling package.

Centralizes error-to-HTTP mapping so that every failure, and every
request that matched no route, ends in the same JSON response shape.
"""
