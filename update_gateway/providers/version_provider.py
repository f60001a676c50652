"""
Version Provider - проверка версий и решение об обновлении
"""

import logging
import re
from dataclasses import dataclass
from typing import Dict, Any, Optional, Tuple

from .platform_provider import PlatformKey, resolve
from .snapshot_provider import ReleaseSnapshot

logger = logging.getLogger(__name__)

# SemVer 2.0; допускается ведущая "v" и пробелы по краям
SEMVER_PATTERN = re.compile(
    r'^v?(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)'
    r'(?:-((?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*)(?:\.(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*))*))?'
    r'(?:\+([0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?$'
)
MAX_VERSION_LENGTH = 256

VersionKey = Tuple[int, int, int, Tuple[str, ...]]


@dataclass(frozen=True)
class UpdateDecision:
    """Результат проверки обновления"""


@dataclass(frozen=True)
class InvalidVersion(UpdateDecision):
    error: str = 'version_invalid'
    message: str = 'The specified version is not SemVer-compatible'


@dataclass(frozen=True)
class InvalidPlatform(UpdateDecision):
    error: str = 'invalid_platform'
    message: str = 'The specified platform is not valid'


@dataclass(frozen=True)
class NoArtifact(UpdateDecision):
    """В снимке нет артефакта для платформы"""


@dataclass(frozen=True)
class SameVersion(UpdateDecision):
    """У клиента уже версия из снимка"""


@dataclass(frozen=True)
class NewArtifact(UpdateDecision):
    """Клиенту нужно поставить версию из снимка"""
    url: str
    version: Optional[str] = None
    notes: Optional[str] = None
    pub_date: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        """Тело ответа для Squirrel.Mac; пустые поля не передаются"""
        payload = {
            "name": self.version,
            "notes": self.notes,
            "pub_date": self.pub_date,
            "url": self.url
        }
        return {key: value for key, value in payload.items() if value is not None}


def parse_version(version_string: str) -> VersionKey:
    """
    Парсинг версии SemVer

    Args:
        version_string: Строка версии (например, "1.2.3-beta.1+build.5")

    Returns:
        VersionKey: (major, minor, patch, prerelease); build-метаданные отбрасываются

    Raises:
        ValueError: Если версия неверного формата
    """
    if not isinstance(version_string, str) or len(version_string) > MAX_VERSION_LENGTH:
        raise ValueError(f"Неверный формат версии: {version_string!r}")

    match = SEMVER_PATTERN.match(version_string.strip())
    if not match:
        raise ValueError(f"Неверный формат версии: {version_string!r}")

    major, minor, patch, prerelease, _build = match.groups()
    identifiers = tuple(prerelease.split('.')) if prerelease else ()
    return int(major), int(minor), int(patch), identifiers


def validate_version(version: str) -> bool:
    """True если строка - валидная SemVer версия"""
    try:
        parse_version(version)
        return True
    except ValueError:
        return False


def versions_differ(latest: Optional[str], requested: str) -> bool:
    """
    Отличается ли версия снимка от версии клиента

    Сравнивается приоритет SemVer без build-метаданных. Направление не важно:
    более старая версия в снимке тоже считается обновлением (откат).
    Неразбираемая версия снимка всегда считается отличающейся.
    """
    try:
        latest_key = parse_version(latest)
    except ValueError:
        logger.warning(f"⚠️ Версия снимка не SemVer: {latest!r}")
        return True
    return latest_key != parse_version(requested)


class VersionProvider:
    """Провайдер проверки обновлений"""

    def __init__(self, config):
        self.config = config

    async def initialize(self) -> bool:
        """Инициализация провайдера"""
        logger.info("🔧 Инициализация VersionProvider...")
        return True

    def precheck(self, requested_version: str, platform: str) -> Tuple[Optional[UpdateDecision], Optional[PlatformKey]]:
        """
        Проверка входных данных до обращения к снимку

        Returns:
            (ошибка или None, разрешенная платформа или None)
        """
        if not validate_version(requested_version):
            return InvalidVersion(), None

        platform_key = resolve(platform)
        if platform_key is None:
            return InvalidPlatform(), None

        return None, platform_key

    def decide(self, requested_version: str, snapshot: ReleaseSnapshot, platform: str) -> UpdateDecision:
        """
        Решение об обновлении

        Args:
            requested_version: Версия клиента
            snapshot: Снимок релиза
            platform: Токен платформы (алиас или канонический ключ)

        Returns:
            UpdateDecision: InvalidVersion, InvalidPlatform, NoArtifact, SameVersion или NewArtifact
        """
        error, platform_key = self.precheck(requested_version, platform)
        if error is not None:
            return error

        asset = snapshot.asset(platform_key)
        if asset is None:
            return NoArtifact()

        if not versions_differ(snapshot.version, requested_version):
            return SameVersion()

        return NewArtifact(
            url=asset.url,
            version=snapshot.version,
            notes=snapshot.notes,
            pub_date=snapshot.pub_date
        )

    async def stop(self) -> bool:
        """Остановка провайдера"""
        logger.info("🛑 Остановка VersionProvider...")
        return True

    def get_status(self) -> Dict[str, Any]:
        """Получение статуса провайдера"""
        return {
            "status": "running",
            "provider": "version"
        }
