"""
Тесты HTTP сервера обновлений
"""

import pytest
import pytest_asyncio
from aiohttp import test_utils

from update_gateway.config import UpdateGatewayConfig
from update_gateway.providers.snapshot_provider import SnapshotAccessor, StaticSnapshotProvider
from update_gateway.providers.update_server_provider import UpdateServerProvider
from update_gateway.providers.version_provider import VersionProvider

MAC_UA = "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko)"
WINDOWS_UA = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko)"
LINUX_UA = "Mozilla/5.0 (X11; Ubuntu; Linux x86_64; rv:109.0) Gecko/20100101 Firefox/118.0"

RELEASES = "E1F1B4 App-2.0.0-full.nupkg 85766372\nA1B2C3 App-2.0.0-delta.nupkg 1024"

SNAPSHOT = {
    'version': '2.0.0',
    'notes': 'Release notes',
    'pub_date': '2024-05-10T12:00:00Z',
    'platforms': {
        'dmg': {'url': 'https://x/mac.dmg'},
        'darwin': {'url': 'https://x/darwin.zip'},
        'msi': {'url': 'https://x/win.msi'},
        'exe': {'url': 'https://x/setup.exe'},
        'nupkg': {'url': 'https://x/App-2.0.0-full.nupkg'},
    },
    'files': {'RELEASES': RELEASES}
}


class FailingSnapshotProvider(SnapshotAccessor):
    """Источник, который всегда падает"""

    async def load_cache(self):
        raise RuntimeError("upstream unavailable")


async def make_client(snapshot_provider, config=None, renderer=None):
    config = config or UpdateGatewayConfig()
    provider = UpdateServerProvider(config, snapshot_provider, VersionProvider(config), renderer=renderer)
    app = await provider.create_app()
    client = test_utils.TestClient(test_utils.TestServer(app))
    await client.start_server()
    return client


@pytest_asyncio.fixture
async def client():
    """Фикстура клиента с полным снимком"""
    client = await make_client(StaticSnapshotProvider(SNAPSHOT))
    yield client
    await client.close()


@pytest_asyncio.fixture
async def empty_client():
    """Фикстура клиента с пустым снимком"""
    client = await make_client(StaticSnapshotProvider())
    yield client
    await client.close()


class TestDownload:
    """Тесты /download"""

    @pytest.mark.asyncio
    async def test_mac_browser_gets_dmg(self, client):
        resp = await client.get('/download', headers={'User-Agent': MAC_UA}, allow_redirects=False)

        assert resp.status == 302
        assert resp.headers['Location'] == 'https://x/mac.dmg'

    @pytest.mark.asyncio
    async def test_mac_updater_gets_darwin(self, client):
        resp = await client.get('/download?update=true', headers={'User-Agent': MAC_UA},
                                allow_redirects=False)

        assert resp.status == 302
        assert resp.headers['Location'] == 'https://x/darwin.zip'

    @pytest.mark.asyncio
    async def test_windows_gets_msi(self, client):
        resp = await client.get('/download?update=1', headers={'User-Agent': WINDOWS_UA},
                                allow_redirects=False)

        assert resp.status == 302
        assert resp.headers['Location'] == 'https://x/win.msi'

    @pytest.mark.asyncio
    async def test_repeated_update_flag(self, client):
        resp = await client.get('/download?update=&update=1', headers={'User-Agent': MAC_UA},
                                allow_redirects=False)

        assert resp.status == 302
        assert resp.headers['Location'] == 'https://x/darwin.zip'

    @pytest.mark.asyncio
    async def test_linux_gets_404(self, client):
        resp = await client.get('/download', headers={'User-Agent': LINUX_UA}, allow_redirects=False)

        assert resp.status == 404
        assert await resp.text() == 'No download available for your platform!'

    @pytest.mark.asyncio
    async def test_empty_snapshot_gets_404(self, empty_client):
        resp = await empty_client.get('/download', headers={'User-Agent': MAC_UA}, allow_redirects=False)

        assert resp.status == 404


class TestDownloadPlatform:
    """Тесты /download/{platform}"""

    @pytest.mark.asyncio
    async def test_mac_alias_is_dmg(self, client):
        resp = await client.get('/download/mac', allow_redirects=False)

        assert resp.status == 302
        assert resp.headers['Location'] == 'https://x/mac.dmg'

    @pytest.mark.asyncio
    async def test_mac_alias_with_update_is_darwin(self, client):
        resp = await client.get('/download/mac?update=true', allow_redirects=False)

        assert resp.status == 302
        assert resp.headers['Location'] == 'https://x/darwin.zip'

    @pytest.mark.asyncio
    async def test_mac_arm64_without_artifact(self, client):
        resp = await client.get('/download/mac_arm64', allow_redirects=False)

        assert resp.status == 404
        assert await resp.text() == 'No download available for your platform'

    @pytest.mark.asyncio
    async def test_windows_alias(self, client):
        resp = await client.get('/download/win32', allow_redirects=False)

        assert resp.status == 302
        assert resp.headers['Location'] == 'https://x/setup.exe'

    @pytest.mark.asyncio
    async def test_invalid_platform(self, client):
        resp = await client.get('/download/amiga', allow_redirects=False)

        assert resp.status == 500
        assert await resp.text() == 'The specified platform is not valid'


class TestUpdate:
    """Тесты /update/{platform}/{version}"""

    @pytest.mark.asyncio
    async def test_new_version(self, client):
        resp = await client.get('/update/msi/1.0.0')

        assert resp.status == 200
        assert await resp.json() == {
            'name': '2.0.0',
            'notes': 'Release notes',
            'pub_date': '2024-05-10T12:00:00Z',
            'url': 'https://x/win.msi'
        }

    @pytest.mark.asyncio
    async def test_same_version(self, client):
        resp = await client.get('/update/msi/2.0.0')

        assert resp.status == 204
        assert await resp.read() == b''

    @pytest.mark.asyncio
    async def test_downgrade(self, client):
        resp = await client.get('/update/darwin/3.1.0')

        assert resp.status == 200
        body = await resp.json()
        assert body['name'] == '2.0.0'
        assert body['url'] == 'https://x/darwin.zip'

    @pytest.mark.asyncio
    async def test_alias(self, client):
        resp = await client.get('/update/mac/1.9.9')

        assert resp.status == 200
        assert (await resp.json())['url'] == 'https://x/darwin.zip'

    @pytest.mark.asyncio
    async def test_invalid_version(self, client):
        resp = await client.get('/update/darwin/not-a-version')

        assert resp.status == 500
        assert (await resp.json())['error'] == 'version_invalid'

    @pytest.mark.asyncio
    async def test_invalid_platform(self, client):
        resp = await client.get('/update/amiga/1.0.0')

        assert resp.status == 500
        assert (await resp.json())['error'] == 'invalid_platform'

    @pytest.mark.asyncio
    async def test_no_artifact(self, empty_client):
        resp = await empty_client.get('/update/darwin/1.0.0')

        assert resp.status == 204

    @pytest.mark.asyncio
    async def test_invalid_input_status_configurable(self):
        client = await make_client(StaticSnapshotProvider(SNAPSHOT),
                                   config=UpdateGatewayConfig(invalid_input_status=400))
        try:
            resp = await client.get('/update/darwin/latest')
            assert resp.status == 400
            resp = await client.get('/download/amiga', allow_redirects=False)
            assert resp.status == 400
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_win32_version_is_update_check(self, client):
        resp = await client.get('/update/win32/1.0.0')

        assert resp.status == 200
        assert (await resp.json())['url'] == 'https://x/setup.exe'


class TestSquirrelWindows:
    """Тесты RELEASES / nupkg"""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("filename", ['RELEASES', 'releases', 'RELEASES-x64'])
    async def test_releases(self, client, filename):
        resp = await client.get(f'/update/win32/{filename}')

        assert resp.status == 200
        assert resp.headers['Content-Type'] == 'application/octet-stream'
        assert resp.headers['Content-Length'] == str(len(RELEASES.encode('utf-8')))
        assert await resp.text() == RELEASES

    @pytest.mark.asyncio
    async def test_releases_with_query(self, client):
        resp = await client.get('/update/win32/RELEASES?id=App&localVersion=1.0.0')

        assert resp.status == 200

    @pytest.mark.asyncio
    async def test_releases_missing(self, empty_client):
        resp = await empty_client.get('/update/win32/RELEASES')

        assert resp.status == 204

    @pytest.mark.asyncio
    @pytest.mark.parametrize("filename", ['App-2.0.0-full.nupkg', 'foo.NUPKG'])
    async def test_nupkg(self, client, filename):
        resp = await client.get(f'/update/win32/{filename}', allow_redirects=False)

        assert resp.status == 302
        assert resp.headers['Location'] == 'https://x/App-2.0.0-full.nupkg'

    @pytest.mark.asyncio
    async def test_nupkg_missing(self, empty_client):
        resp = await empty_client.get('/update/win32/foo.nupkg', allow_redirects=False)

        assert resp.status == 204

    @pytest.mark.asyncio
    async def test_unknown_filename(self, client):
        resp = await client.get('/update/win32/foo.txt')

        assert resp.status == 400
        assert await resp.read() == b''

    @pytest.mark.asyncio
    async def test_versioned_feed_url(self, client):
        resp = await client.get('/update/win32/1.0.0/RELEASES')
        assert resp.status == 200
        assert await resp.text() == RELEASES

        resp = await client.get('/update/exe/1.0.0/App-2.0.0-delta.nupkg', allow_redirects=False)
        assert resp.status == 302

        resp = await client.get('/update/win32/1.0.0/setup.log')
        assert resp.status == 400


class TestEndToEnd:
    """Сценарий: снимок 2.0.0 с dmg, darwin и msi"""

    @pytest.mark.asyncio
    async def test_scenario(self):
        client = await make_client(StaticSnapshotProvider({
            'version': '2.0.0',
            'platforms': {
                'dmg': {'url': 'https://x/mac.dmg'},
                'darwin': {'url': 'https://x/darwin.zip'},
                'msi': {'url': 'https://x/win.msi'},
            }
        }))
        try:
            resp = await client.get('/download/mac', allow_redirects=False)
            assert resp.status == 302
            assert resp.headers['Location'] == 'https://x/mac.dmg'

            resp = await client.get('/download/mac_arm64', allow_redirects=False)
            assert resp.status == 404

            resp = await client.get('/update/msi/1.0.0')
            assert resp.status == 200
            body = await resp.json()
            assert body['name'] == '2.0.0'
            assert body['url'] == 'https://x/win.msi'

            resp = await client.get('/update/msi/2.0.0')
            assert resp.status == 204
        finally:
            await client.close()


class TestOverviewAndHealth:
    """Тесты главной страницы, health и middleware"""

    @pytest.mark.asyncio
    async def test_overview(self, client):
        resp = await client.get('/')

        assert resp.status == 200
        assert resp.headers['Content-Type'].startswith('text/html')
        html = await resp.text()
        assert '2.0.0' in html
        assert 'https://x/darwin.zip' in html

    @pytest.mark.asyncio
    async def test_overview_render_failure(self):
        def broken_renderer(details):
            raise FileNotFoundError("index.html")

        client = await make_client(StaticSnapshotProvider(SNAPSHOT), renderer=broken_renderer)
        try:
            resp = await client.get('/')
            assert resp.status == 500
            assert await resp.text() == 'Error reading overview file'
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_custom_renderer_gets_details(self):
        seen = {}

        def renderer(details):
            seen.update(details)
            return "<p>ok</p>"

        client = await make_client(StaticSnapshotProvider(SNAPSHOT),
                                   config=UpdateGatewayConfig(account='acme', repository='app'),
                                   renderer=renderer)
        try:
            resp = await client.get('/')
            assert await resp.text() == "<p>ok</p>"
            assert seen['files'] == {'mac': 'https://x/darwin.zip', 'windows': 'https://x/win.msi'}
            assert seen['releaseNotes'] == 'https://github.com/acme/app/releases/tag/2.0.0'
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_health(self, client):
        resp = await client.get('/health')

        assert resp.status == 200
        body = await resp.json()
        assert body['status'] == 'healthy'
        assert body['latest_version'] == '2.0.0'
        assert 'nupkg' in body['platforms']

    @pytest.mark.asyncio
    async def test_cors_headers(self, client):
        resp = await client.get('/update/msi/1.0.0')

        assert resp.headers['Access-Control-Allow-Origin'] == '*'

    @pytest.mark.asyncio
    async def test_accessor_failure(self):
        client = await make_client(FailingSnapshotProvider())
        try:
            resp = await client.get('/update/darwin/1.0.0')
            assert resp.status == 500
            assert await resp.text() == 'Internal Server Error'

            # Ошибки ввода не требуют снимка
            resp = await client.get('/update/darwin/bad')
            assert (await resp.json())['error'] == 'version_invalid'

            resp = await client.get('/health')
            assert resp.status == 500
            assert (await resp.json())['status'] == 'unhealthy'
        finally:
            await client.close()
