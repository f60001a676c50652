"""
Snapshot Provider - снимок последнего релиза

Снимок формирует внешний загрузчик (например, кэш GitHub Releases).
Сервер только читает его: один вызов load_cache() на запрос.
"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Any, Optional, Tuple, Union

from .platform_provider import PlatformKey

logger = logging.getLogger(__name__)

RELEASES_FILE = "RELEASES"


class SnapshotLoadError(Exception):
    """Снимок существует, но не может быть прочитан"""


@dataclass(frozen=True)
class PlatformAsset:
    """Артефакт одной платформы"""
    url: str
    name: Optional[str] = None
    size: Optional[int] = None
    content_type: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PlatformAsset':
        return cls(
            url=data['url'],
            name=data.get('name'),
            size=data.get('size'),
            content_type=data.get('content_type'),
        )


@dataclass(frozen=True)
class ReleaseSnapshot:
    """Неизменяемый снимок последнего релиза; любое поле может отсутствовать"""
    version: Optional[str] = None
    notes: Optional[str] = None
    pub_date: Optional[str] = None
    platforms: Dict[PlatformKey, PlatformAsset] = field(default_factory=dict)
    files: Dict[str, str] = field(default_factory=dict)

    def asset(self, platform: PlatformKey) -> Optional[PlatformAsset]:
        """Артефакт платформы или None"""
        return self.platforms.get(platform)

    @property
    def releases_manifest(self) -> Optional[str]:
        """Содержимое RELEASES для Squirrel.Windows"""
        return self.files.get(RELEASES_FILE) or None

    @property
    def is_empty(self) -> bool:
        return self.version is None and not self.platforms and not self.files

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'ReleaseSnapshot':
        """
        Создание снимка из JSON-структуры загрузчика

        Неизвестные платформы и записи без url пропускаются.

        Args:
            data: {version, notes, pub_date, platforms: {key: {url, ...}}, files: {RELEASES: str}}

        Returns:
            ReleaseSnapshot: Снимок (пустой, если data пустой)
        """
        if not data:
            return cls()

        platforms = {}
        for name, entry in (data.get('platforms') or {}).items():
            try:
                key = PlatformKey(name)
            except ValueError:
                logger.debug(f"Пропущена неизвестная платформа в снимке: {name}")
                continue
            if not isinstance(entry, dict) or not entry.get('url'):
                logger.debug(f"Пропущена платформа без url: {name}")
                continue
            platforms[key] = PlatformAsset.from_dict(entry)

        files = {
            name: content
            for name, content in (data.get('files') or {}).items()
            if isinstance(content, str)
        }

        return cls(
            version=data.get('version'),
            notes=data.get('notes'),
            pub_date=data.get('pub_date'),
            platforms=platforms,
            files=files,
        )


class SnapshotAccessor(ABC):
    """
    Источник снимка релиза

    load_cache() не должен падать из-за отсутствия данных:
    в этом случае возвращается пустой снимок.
    """

    @abstractmethod
    async def load_cache(self) -> ReleaseSnapshot:
        pass

    def get_status(self) -> Dict[str, Any]:
        return {"provider": self.__class__.__name__}


class StaticSnapshotProvider(SnapshotAccessor):
    """Фиксированный снимок (тесты, встраивание)"""

    def __init__(self, snapshot: Optional[Union[ReleaseSnapshot, Dict[str, Any]]] = None):
        self.snapshot = None
        self.update(snapshot)

    def update(self, snapshot: Optional[Union[ReleaseSnapshot, Dict[str, Any]]]):
        """Замена снимка целиком"""
        if not isinstance(snapshot, ReleaseSnapshot):
            snapshot = ReleaseSnapshot.from_dict(snapshot)
        self.snapshot = snapshot

    async def load_cache(self) -> ReleaseSnapshot:
        return self.snapshot


class FileSnapshotProvider(SnapshotAccessor):
    """Снимок из JSON файла; перечитывается при изменении mtime или размера"""

    def __init__(self, snapshot_file: Union[str, Path]):
        self.snapshot_file = Path(snapshot_file)
        self._snapshot = ReleaseSnapshot()
        self._signature: Optional[Tuple[int, int]] = None
        self.total_loads = 0

    async def load_cache(self) -> ReleaseSnapshot:
        """
        Текущий снимок

        Если файл битый, а снимок уже загружался раньше, отдается прежний
        снимок; файл перечитывается на следующем запросе.

        Raises:
            SnapshotLoadError: Файл есть, но это не валидный JSON-объект,
                и ни один снимок еще не загружен
        """
        try:
            stat = self.snapshot_file.stat()
        except FileNotFoundError:
            if self._signature is not None:
                logger.warning(f"⚠️ Файл снимка пропал: {self.snapshot_file}")
            self._snapshot = ReleaseSnapshot()
            self._signature = None
            return self._snapshot

        signature = (stat.st_mtime_ns, stat.st_size)
        if signature == self._signature:
            return self._snapshot

        try:
            data = self._read()
        except SnapshotLoadError as e:
            if self.total_loads == 0:
                raise
            logger.warning(f"⚠️ {e}; используется прежний снимок {self._snapshot.version}")
            return self._snapshot

        self._snapshot = ReleaseSnapshot.from_dict(data)
        self._signature = signature
        self.total_loads += 1

        logger.info(f"📦 Снимок релиза загружен: версия {self._snapshot.version}, "
                    f"платформ {len(self._snapshot.platforms)}")
        return self._snapshot

    def _read(self) -> Dict[str, Any]:
        try:
            with open(self.snapshot_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise SnapshotLoadError(f"Не удалось прочитать снимок {self.snapshot_file}: {e}") from e

        if not isinstance(data, dict):
            raise SnapshotLoadError(f"Снимок {self.snapshot_file} должен быть JSON-объектом")
        return data

    def get_status(self) -> Dict[str, Any]:
        return {
            "provider": "file",
            "snapshot_file": str(self.snapshot_file),
            "snapshot_exists": self.snapshot_file.exists(),
            "loaded_version": self._snapshot.version,
            "total_loads": self.total_loads
        }
