"""Tests for the development server."""
import asyncio

import pytest
from aiohttp import test_utils

from fusebuild.config import BuildConfig
from fusebuild.dev_server import DevServer
from fusebuild.models import BuildMode, StageResult


class RecordingCompiler:
    """Stands in for SourceCompiler; optionally writes the compiled file."""

    def __init__(self, output=None, content='compiled()', ok=True):
        self.calls = 0
        self.output = output
        self.content = content
        self.ok = ok

    def compile(self):
        self.calls += 1
        if self.ok and self.output is not None:
            self.output.parent.mkdir(parents=True, exist_ok=True)
            self.output.write_text(self.content)
            return StageResult.success('compile')
        return StageResult.degraded('compile', 'external_tool_failure', 'error TS1005')


def fetch(server: DevServer, path: str, method: str = 'GET'):
    """Issue one request; returns (status, headers, body)."""
    async def go():
        client = test_utils.TestClient(test_utils.TestServer(server.create_app()))
        await client.start_server()
        try:
            resp = await client.request(method, path)
            body = await resp.text()
            return resp.status, resp.headers, body
        finally:
            await client.close()

    return asyncio.run(go())


@pytest.fixture
def config(project) -> BuildConfig:
    return BuildConfig(mode=BuildMode.DEVELOPMENT, root=project)


class TestCompileOnRequest:

    def test_compiled_entry_triggers_compiler(self, config, project):
        compiler = RecordingCompiler(project / 'dist' / 'main.js', content='fresh()')

        status, _, body = fetch(DevServer(config, compiler), '/dist/main.js')

        assert status == 200
        assert body == 'fresh()'
        assert compiler.calls == 1

    def test_every_request_recompiles(self, config, project):
        compiler = RecordingCompiler(project / 'dist' / 'main.js')
        server = DevServer(config, compiler)

        fetch(server, '/dist/main.js')
        fetch(server, '/dist/main.js')

        assert compiler.calls == 2

    def test_failed_compile_serves_stale_output(self, config):
        compiler = RecordingCompiler(ok=False)

        status, _, body = fetch(DevServer(config, compiler), '/dist/main.js')

        assert status == 200
        assert body == '// main.js'

    def test_failed_compile_without_output(self, config, project):
        (project / 'dist' / 'main.js').unlink()

        status, _, _ = fetch(DevServer(config, RecordingCompiler(ok=False)), '/dist/main.js')

        assert status == 404

    def test_other_files_do_not_compile(self, config):
        compiler = RecordingCompiler()

        status, _, body = fetch(DevServer(config, compiler), '/game.js')

        assert status == 200
        assert body == 'var x=1;'
        assert compiler.calls == 0


class TestStaticServing:

    def test_root_serves_index(self, config):
        status, _, body = fetch(DevServer(config, RecordingCompiler()), '/')

        assert status == 200
        assert '<script type="module" src="/dist/main.js"></script>' in body

    def test_missing_file(self, config):
        status, _, _ = fetch(DevServer(config, RecordingCompiler()), '/missing.js')

        assert status == 404

    def test_directory_listing(self, config):
        status, _, body = fetch(DevServer(config, RecordingCompiler()), '/dist')

        assert status == 200
        assert 'Index of /dist' in body
        assert 'mobileUtils.js' in body

    def test_cors_headers(self, config):
        _, headers, _ = fetch(DevServer(config, RecordingCompiler()), '/game.js')

        assert headers['Access-Control-Allow-Origin'] == '*'

    def test_cors_preflight(self, config):
        status, headers, _ = fetch(DevServer(config, RecordingCompiler()), '/game.js', method='OPTIONS')

        assert status == 200
        assert 'GET' in headers['Access-Control-Allow-Methods']


def serve(server: DevServer, path: str):
    """Call the handler directly with a raw match_info path (no URL normalization)."""
    async def go():
        request = test_utils.make_mocked_request('GET', '/' + path, match_info={'path': path})
        return await server.serve_file(request)

    return asyncio.run(go())


class TestPathTraversal:

    def test_parent_directory_refused(self, config, tmp_path):
        outside = tmp_path.parent / 'fusebuild-outside.txt'

        response = serve(DevServer(config, RecordingCompiler()), f'../{outside.name}')

        assert response.status == 403

    def test_symlink_out_of_root_refused(self, config, project, tmp_path_factory):
        outside = tmp_path_factory.mktemp('outside')
        (outside / 'secret.txt').write_text('secret')
        (project / 'escape').symlink_to(outside)

        response = serve(DevServer(config, RecordingCompiler()), 'escape/secret.txt')

        assert response.status == 403

    def test_nested_path_inside_root_allowed(self, config):
        status, _, body = fetch(DevServer(config, RecordingCompiler()), '/dist/mobileUtils.js')

        assert status == 200
        assert body == '// mobileUtils.js'
