"""
Development server.

Serves the project root with:
- The compiled entry script rebuilt on every request for it
- Proper MIME types (especially for .mjs, .ts, .map)
- CORS headers for development
- Directory listing
"""
import asyncio
import mimetypes
from pathlib import Path
from typing import Optional

from aiohttp import web

from fusebuild.compiler import SourceCompiler
from fusebuild.config import BuildConfig
from fusebuild.logging import get_logger

log = get_logger('dev_server')

mimetypes.add_type('application/javascript', '.mjs')
mimetypes.add_type('application/javascript', '.js')
mimetypes.add_type('application/typescript', '.ts')
mimetypes.add_type('application/json', '.map')


@web.middleware
async def cors_middleware(request, handler):
    """Add CORS headers to all responses."""
    if request.method == 'OPTIONS':
        return web.Response(headers={
            'Access-Control-Allow-Origin': '*',
            'Access-Control-Allow-Methods': 'GET, OPTIONS',
            'Access-Control-Allow-Headers': '*',
        })
    response = await handler(request)
    response.headers['Access-Control-Allow-Origin'] = '*'
    return response


class DevServer:
    """Static file server that compiles the typed entry point on demand."""

    def __init__(self, config: BuildConfig, compiler: Optional[SourceCompiler] = None):
        self.config = config
        self.root = config.root.resolve()
        self.compiler = compiler or SourceCompiler(
            config.compiler_command(), cwd=config.root, timeout=config.tool_timeout
        )

    async def compile_entry(self) -> None:
        """Run the compiler without blocking other requests."""
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self.compiler.compile)

    async def serve_file(self, request: web.Request) -> web.StreamResponse:
        """Serve a file or directory listing."""
        path = request.match_info.get('path', '')

        # Not cached: every request for the compiled entry recompiles
        if '/' + path == self.config.dev_compiled_path:
            await self.compile_entry()

        file_path = self.root / path

        # Security: prevent path traversal
        try:
            file_path = file_path.resolve()
            file_path.relative_to(self.root)
        except (ValueError, RuntimeError):
            return web.Response(status=403, text='Forbidden')

        if not file_path.exists():
            return web.Response(status=404, text='Not found')

        if file_path.is_dir():
            index = file_path / 'index.html'
            if index.exists():
                return web.FileResponse(index)
            return web.Response(text=self._listing(path, file_path), content_type='text/html')

        return web.FileResponse(file_path)

    @staticmethod
    def _listing(path: str, directory: Path) -> str:
        items = sorted(directory.iterdir(), key=lambda p: (not p.is_dir(), p.name.lower()))
        html = f'<html><head><title>Index of /{path}</title></head><body>'
        html += f'<h1>Index of /{path}</h1><ul>'
        if path:
            html += f'<li><a href="/{"/".join(path.rstrip("/").split("/")[:-1])}">..</a></li>'
        for item in items:
            name = item.name + ('/' if item.is_dir() else '')
            rel_path = f'{path.rstrip("/")}/{item.name}' if path else item.name
            html += f'<li><a href="/{rel_path}">{name}</a></li>'
        html += '</ul></body></html>'
        return html

    def create_app(self) -> web.Application:
        """Create the web application."""
        middlewares = [cors_middleware] if self.config.cors else []
        app = web.Application(middlewares=middlewares)
        app.router.add_get('/', self.serve_file)
        app.router.add_get('/{path:.*}', self.serve_file)
        return app


def run_dev_server(config: BuildConfig, compiler: Optional[SourceCompiler] = None) -> None:
    """Serve the project until interrupted."""
    server = DevServer(config, compiler)
    log.info("Dev server starting on http://%s:%d", config.host, config.port)
    log.info("Serving files from: %s", server.root)
    web.run_app(server.create_app(), host=config.host, port=config.port, print=None)
