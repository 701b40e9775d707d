"""
Modules website server.

Application package root. A single FastAPI application whose request
pipeline is assembled from library middleware, with one piece of custom
logic: the error normalizer that turns every failure into a JSON response.

Layers:
    - domain: Error condition model and the HttpError raised by routes.
    - interfaces: FastAPI routers (pages, health) and schemas.
    - shared: Cross-cutting concerns (errors, security, logging, middleware).
    - core: Configuration.
"""

__version__ = "1.0.0"
