"""
Public directory served at the site root.

Runs before the router: a GET or HEAD for a regular file under the public
directory is answered with that file. Every other request, including a
missing file or any other method, falls through to the routes and from
there to the unmatched-route 404.
"""

import stat

from starlette.concurrency import run_in_threadpool
from starlette.staticfiles import StaticFiles
from starlette.types import ASGIApp, Receive, Scope, Send

SERVED_METHODS = ("GET", "HEAD")


class PublicFilesMiddleware:
    """Serve files from ``directory`` ahead of the application routes."""

    def __init__(self, app: ASGIApp, directory: str) -> None:
        self.app = app
        self.files = StaticFiles(directory=directory)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http" and scope["method"] in SERVED_METHODS:
            path = self.files.get_path(scope)
            try:
                full_path, stat_result = await run_in_threadpool(
                    self.files.lookup_path, path
                )
            except (OSError, ValueError):
                # Unreadable or invalid names fall through like missing files.
                full_path, stat_result = "", None
            if stat_result is not None and stat.S_ISREG(stat_result.st_mode):
                response = self.files.file_response(full_path, stat_result, scope)
                await response(scope, receive, send)
                return

        await self.app(scope, receive, send)
