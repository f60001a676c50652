"""
Update Server Provider - HTTP сервер обновлений
"""

import logging
from datetime import datetime
from typing import Callable, Dict, Any, Optional
from aiohttp import web, web_request, web_response

from .overview_provider import prepare_details, render_overview
from .platform_provider import PlatformKey, interpret_download_request, resolve_download_token
from .snapshot_provider import SnapshotAccessor
from .version_provider import (
    VersionProvider, UpdateDecision, InvalidVersion, InvalidPlatform,
    NewArtifact, validate_version
)

logger = logging.getLogger(__name__)

SQUIRREL_WINDOWS_PLATFORM = 'win32'


@web.middleware
async def error_middleware(request: web_request.Request, handler) -> web_response.StreamResponse:
    """Сбой источника снимка и прочие непредвиденные ошибки -> 500"""
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except Exception:
        logger.exception(f"❌ Ошибка обработки {request.method} {request.path}")
        return web.Response(
            text="Internal Server Error",
            status=500,
            content_type='text/plain'
        )


class UpdateServerProvider:
    """Провайдер HTTP сервера обновлений"""

    def __init__(self, config, snapshot_provider: SnapshotAccessor, version_provider: VersionProvider,
                 renderer: Optional[Callable[[Dict[str, Any]], str]] = None):
        self.config = config
        self.snapshot_provider = snapshot_provider
        self.version_provider = version_provider
        self.renderer = renderer or render_overview

        self.app = None
        self.runner = None
        self.site = None
        self.is_running = False

    async def initialize(self) -> bool:
        """Инициализация провайдера"""
        try:
            logger.info("🔧 Инициализация UpdateServerProvider...")

            self.app = await self.create_app()

            return True
        except Exception as e:
            logger.error(f"❌ Ошибка инициализации UpdateServerProvider: {e}")
            return False

    async def create_app(self) -> web.Application:
        """Создание aiohttp приложения"""
        app = web.Application(middlewares=[error_middleware])

        # CORS middleware
        if self.config.cors_enabled:
            @web.middleware
            async def cors_middleware(request: web_request.Request, handler) -> web_response.StreamResponse:
                response = await handler(request)
                response.headers['Access-Control-Allow-Origin'] = '*'
                response.headers['Access-Control-Allow-Methods'] = 'GET, OPTIONS'
                response.headers['Access-Control-Allow-Headers'] = 'Content-Type'
                return response

            app.middlewares.append(cors_middleware)

        # Routes
        app.router.add_get('/', self.overview_handler)
        app.router.add_get('/health', self.health_handler)
        app.router.add_get('/download', self.download_handler)
        app.router.add_get('/download/{platform}', self.download_platform_handler)
        app.router.add_get('/update/{platform}/{version}', self.update_handler)
        app.router.add_get('/update/{platform}/{version}/{filename}', self.squirrel_windows_handler)

        return app

    def _redirect(self, url: str) -> web_response.Response:
        if self.config.log_downloads:
            logger.info(f"📥 Редирект на артефакт: {url}")
        return web.Response(status=302, headers={'Location': url})

    def _no_content(self) -> web_response.Response:
        return web.Response(status=204, headers={'Cache-Control': self.config.cache_control})

    def _decision_response(self, decision: UpdateDecision) -> web_response.Response:
        """UpdateDecision -> HTTP ответ"""
        if isinstance(decision, (InvalidVersion, InvalidPlatform)):
            return web.json_response(
                {"error": decision.error, "message": decision.message},
                status=self.config.invalid_input_status
            )

        if isinstance(decision, NewArtifact):
            return web.json_response(
                decision.to_payload(),
                headers={'Cache-Control': self.config.cache_control}
            )

        return self._no_content()

    async def download_handler(self, request: web_request.Request) -> web_response.Response:
        """Установщик по User-Agent (всегда последняя версия)"""
        platform = interpret_download_request(request.headers.get('User-Agent'), request.query)

        asset = None
        if platform is not None:
            snapshot = await self.snapshot_provider.load_cache()
            asset = snapshot.asset(platform)

        if asset is None:
            if self.config.log_requests:
                logger.info(f"⚠️ Нет загрузки для клиента: {request.headers.get('User-Agent')!r}")
            return web.Response(
                text="No download available for your platform!",
                status=404,
                content_type='text/plain'
            )

        return self._redirect(asset.url)

    async def download_platform_handler(self, request: web_request.Request) -> web_response.Response:
        """Установщик для явно указанной платформы"""
        token = request.match_info['platform']
        platform = resolve_download_token(token, request.query)

        if platform is None:
            if self.config.log_requests:
                logger.info(f"⚠️ Неизвестная платформа: {token!r}")
            return web.Response(
                text="The specified platform is not valid",
                status=self.config.invalid_input_status,
                content_type='text/plain'
            )

        snapshot = await self.snapshot_provider.load_cache()
        asset = snapshot.asset(platform)

        if asset is None:
            return web.Response(
                text="No download available for your platform",
                status=404,
                content_type='text/plain'
            )

        return self._redirect(asset.url)

    async def update_handler(self, request: web_request.Request) -> web_response.Response:
        """Проверка обновления для Squirrel.Mac и совместимых клиентов"""
        platform = request.match_info['platform']
        version = request.match_info['version']

        # /update/win32/RELEASES и /update/win32/<pkg>.nupkg
        if platform == SQUIRREL_WINDOWS_PLATFORM and not validate_version(version):
            return await self._serve_squirrel_file(version)

        error, _ = self.version_provider.precheck(version, platform)
        if error is not None:
            if self.config.log_requests:
                logger.info(f"⚠️ Отклонена проверка обновления {platform}/{version}: {error.error}")
            return self._decision_response(error)

        snapshot = await self.snapshot_provider.load_cache()
        decision = self.version_provider.decide(version, snapshot, platform)

        if self.config.log_requests:
            logger.info(f"🔄 Проверка обновления {platform}/{version}: {type(decision).__name__}")

        return self._decision_response(decision)

    async def squirrel_windows_handler(self, request: web_request.Request) -> web_response.Response:
        """RELEASES и nupkg для Squirrel.Windows (/update/{platform}/{version}/{filename})"""
        return await self._serve_squirrel_file(request.match_info['filename'])

    async def _serve_squirrel_file(self, filename: str) -> web_response.Response:
        """Выбор ответа по форме имени файла"""
        lowered = filename.lower()

        if lowered.startswith('releases'):
            snapshot = await self.snapshot_provider.load_cache()
            content = snapshot.releases_manifest
            if content is None:
                return self._no_content()

            return web.Response(
                body=content.encode('utf-8'),
                content_type='application/octet-stream',
                headers={'Cache-Control': self.config.cache_control}
            )

        if lowered.endswith('nupkg'):
            snapshot = await self.snapshot_provider.load_cache()
            asset = snapshot.asset(PlatformKey.NUPKG)
            if asset is None:
                return self._no_content()
            return self._redirect(asset.url)

        if self.config.log_requests:
            logger.info(f"⚠️ Неизвестный файл Squirrel.Windows: {filename!r}")
        return web.Response(status=400)

    async def overview_handler(self, request: web_request.Request) -> web_response.Response:
        """Главная страница: обзор последнего релиза"""
        snapshot = await self.snapshot_provider.load_cache()

        try:
            details = prepare_details(snapshot, self.config)
            html = self.renderer(details)

            return web.Response(
                text=html,
                content_type='text/html'
            )

        except Exception as e:
            logger.error(f"❌ Ошибка генерации страницы обзора: {e}")
            return web.Response(
                text="Error reading overview file",
                status=500,
                content_type='text/plain'
            )

    async def health_handler(self, request: web_request.Request) -> web_response.Response:
        """Проверка здоровья сервера"""
        try:
            snapshot = await self.snapshot_provider.load_cache()

            health_data = {
                "status": "healthy",
                "timestamp": datetime.now().isoformat(),
                "latest_version": snapshot.version,
                "pub_date": snapshot.pub_date,
                "platforms": sorted(key.value for key in snapshot.platforms),
                "files": sorted(snapshot.files),
                "snapshot": self.snapshot_provider.get_status()
            }

            return web.json_response(health_data)

        except Exception as e:
            logger.error(f"❌ Ошибка health check: {e}")
            return web.json_response({
                "status": "unhealthy",
                "error": str(e),
                "timestamp": datetime.now().isoformat()
            }, status=500)

    async def start_server(self) -> bool:
        """Запуск HTTP сервера"""
        try:
            if self.is_running:
                logger.warning("⚠️ Сервер уже запущен")
                return True

            if not self.app:
                logger.error("❌ Приложение не инициализировано")
                return False

            self.runner = web.AppRunner(self.app)
            await self.runner.setup()

            self.site = web.TCPSite(self.runner, self.config.host, self.config.port)
            await self.site.start()

            self.is_running = True

            logger.info("=" * 60)
            logger.info("🔄 СЕРВЕР ОБНОВЛЕНИЙ ЗАПУЩЕН")
            logger.info("=" * 60)
            logger.info(f"🌐 URL: http://{self.config.host}:{self.config.port}")
            logger.info(f"📥 Download: http://{self.config.host}:{self.config.port}/download")
            logger.info(f"🔄 Update: http://{self.config.host}:{self.config.port}/update/:platform/:version")
            logger.info(f"💚 Health: http://{self.config.host}:{self.config.port}/health")
            logger.info("=" * 60)

            return True

        except Exception as e:
            logger.error(f"❌ Ошибка запуска сервера: {e}")
            return False

    async def stop_server(self) -> bool:
        """Остановка HTTP сервера"""
        try:
            if not self.is_running:
                logger.info("ℹ️ Сервер уже остановлен")
                return True

            if self.site:
                await self.site.stop()
            if self.runner:
                await self.runner.cleanup()

            self.is_running = False
            logger.info("✅ Сервер обновлений остановлен")

            return True

        except Exception as e:
            logger.error(f"❌ Ошибка остановки сервера: {e}")
            return False

    def get_status(self) -> Dict[str, Any]:
        """Получение статуса провайдера"""
        base_url = f"http://{self.config.host}:{self.config.port}"
        return {
            "status": "running" if self.is_running else "stopped",
            "provider": "update_server",
            "host": self.config.host,
            "port": self.config.port,
            "is_running": self.is_running,
            "endpoints": {
                "overview": f"{base_url}/",
                "download": f"{base_url}/download",
                "update": f"{base_url}/update/{{platform}}/{{version}}",
                "health": f"{base_url}/health"
            }
        }
