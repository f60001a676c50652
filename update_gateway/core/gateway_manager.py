"""
Update Gateway Manager - основной координатор сервера обновлений
"""

import time
import logging
from enum import Enum
from typing import Callable, Dict, Any, Optional

from ..config import UpdateGatewayConfig
from ..providers.snapshot_provider import SnapshotAccessor, FileSnapshotProvider, StaticSnapshotProvider
from ..providers.version_provider import VersionProvider
from ..providers.update_server_provider import UpdateServerProvider

logger = logging.getLogger(__name__)


class ModuleStatus(Enum):
    """Статус модуля"""
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    RUNNING = "running"
    ERROR = "error"
    STOPPED = "stopped"


class UpdateGatewayManager:
    """Основной координатор Update Gateway"""

    def __init__(self, config: Optional[UpdateGatewayConfig] = None,
                 snapshot_provider: Optional[SnapshotAccessor] = None,
                 renderer: Optional[Callable[[Dict[str, Any]], str]] = None):
        self.config = config or UpdateGatewayConfig()
        self.renderer = renderer

        # Провайдеры
        self.snapshot_provider = snapshot_provider
        self.version_provider = None
        self.update_server_provider = None

        # Статус
        self.status = ModuleStatus.UNINITIALIZED
        self.is_initialized = False
        self.is_running = False
        self.start_time = None

    @property
    def app(self):
        """aiohttp приложение (после initialize)"""
        return self.update_server_provider.app if self.update_server_provider else None

    async def initialize(self) -> bool:
        """Инициализация модуля"""
        try:
            logger.info("🔧 Инициализация UpdateGatewayManager...")

            if not self.config.enabled:
                logger.info("⏭️ Update Gateway отключен в конфигурации")
                self.is_initialized = True
                self.status = ModuleStatus.READY
                return True

            if not self.config.is_valid():
                logger.error("❌ Неверная конфигурация Update Gateway")
                self.status = ModuleStatus.ERROR
                return False

            await self._initialize_providers()

            self.is_initialized = True
            self.status = ModuleStatus.READY
            logger.info("✅ UpdateGatewayManager инициализирован")
            return True

        except Exception as e:
            logger.error(f"❌ Ошибка инициализации UpdateGatewayManager: {e}")
            self.status = ModuleStatus.ERROR
            return False

    async def _initialize_providers(self):
        """Инициализация всех провайдеров"""
        if self.snapshot_provider is None:
            if self.config.snapshot_file:
                self.snapshot_provider = FileSnapshotProvider(self.config.snapshot_file)
            else:
                logger.warning("⚠️ snapshot_file не задан, сервер будет отдавать пустой релиз")
                self.snapshot_provider = StaticSnapshotProvider()

        self.version_provider = VersionProvider(self.config)
        if not await self.version_provider.initialize():
            raise RuntimeError("Ошибка инициализации VersionProvider")

        self.update_server_provider = UpdateServerProvider(
            self.config,
            self.snapshot_provider,
            self.version_provider,
            renderer=self.renderer
        )
        if not await self.update_server_provider.initialize():
            raise RuntimeError("Ошибка инициализации UpdateServerProvider")

        logger.info("✅ Все провайдеры инициализированы")

    async def start(self) -> bool:
        """Запуск модуля"""
        try:
            logger.info("🚀 Запуск UpdateGatewayManager...")

            if not self.is_initialized:
                logger.error("❌ Модуль не инициализирован")
                return False

            if not self.config.enabled:
                logger.info("⏭️ Update Gateway отключен")
                return True

            if self.is_running:
                logger.warning("⚠️ Модуль уже запущен")
                return True

            if not await self.update_server_provider.start_server():
                logger.error("❌ Ошибка запуска HTTP сервера")
                self.status = ModuleStatus.ERROR
                return False

            self.is_running = True
            self.status = ModuleStatus.RUNNING
            self.start_time = time.monotonic()

            logger.info("✅ UpdateGatewayManager запущен")
            return True

        except Exception as e:
            logger.error(f"❌ Ошибка запуска UpdateGatewayManager: {e}")
            self.status = ModuleStatus.ERROR
            return False

    async def stop(self) -> bool:
        """Остановка модуля"""
        try:
            logger.info("🛑 Остановка UpdateGatewayManager...")

            if not self.is_running:
                logger.info("ℹ️ Модуль уже остановлен")
                return True

            if self.update_server_provider:
                await self.update_server_provider.stop_server()
            if self.version_provider:
                await self.version_provider.stop()

            self.is_running = False
            self.status = ModuleStatus.STOPPED
            logger.info("✅ UpdateGatewayManager остановлен")
            return True

        except Exception as e:
            logger.error(f"❌ Ошибка остановки UpdateGatewayManager: {e}")
            return False

    async def cleanup(self) -> bool:
        """Очистка ресурсов модуля"""
        logger.info("🧹 Очистка ресурсов UpdateGatewayManager...")
        stopped = await self.stop()
        self.start_time = None
        return stopped

    def get_status(self) -> Dict[str, Any]:
        """Получение статуса модуля"""
        uptime = 0
        if self.start_time:
            uptime = time.monotonic() - self.start_time

        status = {
            "status": self.status.value,
            "module": "update_gateway",
            "enabled": self.config.enabled,
            "initialized": self.is_initialized,
            "uptime_seconds": uptime,
            "providers": {}
        }

        if self.snapshot_provider:
            status["providers"]["snapshot"] = self.snapshot_provider.get_status()
        if self.version_provider:
            status["providers"]["version"] = self.version_provider.get_status()
        if self.update_server_provider:
            status["providers"]["update_server"] = self.update_server_provider.get_status()

        return status
