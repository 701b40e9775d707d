"""
Interfaces layer package.

Contains FastAPI routers and Pydantic response schemas.
Routes render views or return small JSON payloads.
"""
