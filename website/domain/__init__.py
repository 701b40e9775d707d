"""
Domain layer package.

Holds the error condition model shared by every pipeline stage.
No framework imports, no IO, no side effects.
"""
