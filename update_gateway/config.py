"""
Конфигурация Update Gateway
"""

import os
import logging
from dataclasses import dataclass, asdict
from typing import Optional, Dict, Any, Union
from pathlib import Path

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Допустимые коды для ошибок клиентского ввода (version_invalid, invalid_platform)
INVALID_INPUT_STATUSES = (400, 500)


@dataclass
class UpdateGatewayConfig:
    """Конфигурация сервера обновлений"""

    # Основные настройки
    enabled: bool = True
    port: int = 8081
    host: str = "0.0.0.0"

    # Источник снимка релиза (JSON, пишется внешним загрузчиком)
    snapshot_file: Optional[str] = None

    # Репозиторий для ссылок на странице обзора
    account: str = ""
    repository: str = ""

    # Настройки сервера
    cors_enabled: bool = True
    cache_control: str = "no-cache, no-store, must-revalidate"

    # Статус для ошибок ввода: 500 для совместимости со старыми клиентами
    invalid_input_status: int = 500

    # Логирование
    log_level: str = "INFO"
    log_requests: bool = True
    log_downloads: bool = True

    def __post_init__(self):
        """Нормализация значений"""
        if self.snapshot_file is not None:
            self.snapshot_file = str(Path(self.snapshot_file).expanduser())
        self.log_level = self.log_level.upper()

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'UpdateGatewayConfig':
        """Создание конфигурации из словаря"""
        return cls(**config_dict)

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> 'UpdateGatewayConfig':
        """Создание конфигурации из переменных окружения"""
        load_dotenv(env_file)
        return cls(
            enabled=os.getenv('UPDATE_ENABLED', 'true').lower() == 'true',
            port=int(os.getenv('UPDATE_PORT', '8081')),
            host=os.getenv('UPDATE_HOST', '0.0.0.0'),
            snapshot_file=os.getenv('UPDATE_SNAPSHOT_FILE'),
            account=os.getenv('UPDATE_ACCOUNT', ''),
            repository=os.getenv('UPDATE_REPOSITORY', ''),
            cors_enabled=os.getenv('UPDATE_CORS', 'true').lower() == 'true',
            invalid_input_status=int(os.getenv('UPDATE_INVALID_INPUT_STATUS', '500')),
            log_level=os.getenv('UPDATE_LOG_LEVEL', 'INFO'),
            log_requests=os.getenv('UPDATE_LOG_REQUESTS', 'true').lower() == 'true',
            log_downloads=os.getenv('UPDATE_LOG_DOWNLOADS', 'true').lower() == 'true'
        )

    @classmethod
    def load_from_yaml(cls, file_path: Union[str, Path]) -> 'UpdateGatewayConfig':
        """
        Загрузка конфигурации из YAML файла

        Args:
            file_path: Путь к файлу

        Returns:
            Экземпляр UpdateGatewayConfig
        """
        with open(file_path, 'r', encoding='utf-8') as f:
            config_dict = yaml.safe_load(f) or {}

        return cls.from_dict(config_dict.get('update', config_dict))

    def save_to_yaml(self, file_path: Union[str, Path]) -> None:
        """Сохранение конфигурации в YAML файл"""
        with open(file_path, 'w', encoding='utf-8') as f:
            yaml.dump({'update': self.to_dict()}, f, default_flow_style=False, allow_unicode=True)

        logger.info(f"✅ Конфигурация сохранена в {file_path}")

    def to_dict(self) -> Dict[str, Any]:
        """Преобразование в словарь"""
        return asdict(self)

    def is_valid(self) -> bool:
        """Проверка валидности конфигурации"""
        if not (1 <= self.port <= 65535):
            logger.error(f"❌ Неверный порт: {self.port}")
            return False

        if self.invalid_input_status not in INVALID_INPUT_STATUSES:
            logger.error(f"❌ invalid_input_status должен быть одним из {INVALID_INPUT_STATUSES}")
            return False

        if not isinstance(logging.getLevelName(self.log_level), int):
            logger.error(f"❌ Неизвестный уровень логирования: {self.log_level}")
            return False

        return True
