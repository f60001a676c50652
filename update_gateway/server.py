#!/usr/bin/env python3
"""
Запуск сервера обновлений (download / update / Squirrel.Windows)
"""

import asyncio
import logging
import os
from typing import Optional

from .config import UpdateGatewayConfig
from .core.gateway_manager import UpdateGatewayManager

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Глобальный экземпляр сервера обновлений
update_gateway: Optional[UpdateGatewayManager] = None


def load_config() -> UpdateGatewayConfig:
    """Конфигурация из YAML (UPDATE_CONFIG_FILE) или из переменных окружения"""
    config_file = os.getenv('UPDATE_CONFIG_FILE')
    if config_file:
        return UpdateGatewayConfig.load_from_yaml(config_file)
    return UpdateGatewayConfig.from_env()


async def start_update_server(config: Optional[UpdateGatewayConfig] = None) -> bool:
    """Запуск сервера обновлений"""
    global update_gateway
    update_gateway = UpdateGatewayManager(config or load_config())
    if not await update_gateway.initialize():
        return False
    return await update_gateway.start()


async def stop_update_server():
    """Остановка сервера обновлений"""
    global update_gateway
    if update_gateway:
        await update_gateway.cleanup()
        update_gateway = None


async def _serve(config: UpdateGatewayConfig):
    try:
        if not await start_update_server(config):
            logger.error("❌ Сервер обновлений не запущен")
            return
        while True:
            await asyncio.sleep(1)
    finally:
        await stop_update_server()


def main():
    config = load_config()
    logging.basicConfig(level=config.log_level, format=LOG_FORMAT)

    try:
        asyncio.run(_serve(config))
    except KeyboardInterrupt:
        logger.info("🛑 Получен сигнал остановки...")


if __name__ == "__main__":
    main()
