"""
Platform Provider - определение платформы клиента

Два способа получить ключ платформы:
- явный токен из пути (/download/{platform}, /update/{platform}/...) через таблицу алиасов
- сигналы клиента (User-Agent + флаг ?update) для /download
"""

import logging
import re
from enum import Enum
from typing import Dict, Mapping, Optional

logger = logging.getLogger(__name__)


class PlatformKey(str, Enum):
    """Канонический ключ артефакта в снимке релиза"""
    DARWIN = "darwin"
    DARWIN_ARM64 = "darwin_arm64"
    DMG = "dmg"
    DMG_ARM64 = "dmg_arm64"
    EXE = "exe"
    MSI = "msi"
    NUPKG = "nupkg"
    DEB = "deb"
    RPM = "rpm"
    APPIMAGE = "AppImage"


class OSFamily(Enum):
    """Семейство ОС, извлеченное из User-Agent"""
    MAC = "mac"
    WINDOWS = "windows"
    OTHER = "other"


_ALIASES = {
    PlatformKey.DARWIN: ('mac', 'macos', 'osx'),
    PlatformKey.DARWIN_ARM64: ('mac_arm64', 'macos_arm64', 'osx_arm64'),
    PlatformKey.EXE: ('win32', 'windows', 'win'),
    PlatformKey.DEB: ('debian',),
    PlatformKey.RPM: ('fedora',),
    PlatformKey.APPIMAGE: ('appimage', 'linux'),
}

# token -> ключ; канонические имена отображаются сами на себя
ALIAS_TABLE: Dict[str, PlatformKey] = {key.value: key for key in PlatformKey}
for _key, _aliases in _ALIASES.items():
    for _alias in _aliases:
        ALIAS_TABLE[_alias] = _key

# Токены, которые без ?update означают установщик, а не архив для автообновления
_INSTALLER_REWRITES = {
    'mac': PlatformKey.DMG.value,
    'mac_arm64': PlatformKey.DMG_ARM64.value,
}

_MOBILE_PATTERN = re.compile(r'iPhone|iPad|iPod|Windows Phone', re.IGNORECASE)
_MAC_PATTERN = re.compile(r'Macintosh|Mac OS X|Mac_PowerPC', re.IGNORECASE)
_WINDOWS_PATTERN = re.compile(r'Windows|Win64|Win32|WOW64', re.IGNORECASE)


def resolve(token: str) -> Optional[PlatformKey]:
    """Алиас или каноническое имя -> PlatformKey, неизвестный токен -> None"""
    if not isinstance(token, str):
        return None
    return ALIAS_TABLE.get(token)


def detect_os_family(user_agent: Optional[str]) -> OSFamily:
    """
    Определение семейства ОС по строке User-Agent

    iOS ("like Mac OS X") и Windows Phone не считаются десктопом.
    """
    if not user_agent or not isinstance(user_agent, str):
        return OSFamily.OTHER

    if _MOBILE_PATTERN.search(user_agent):
        return OSFamily.OTHER
    if _MAC_PATTERN.search(user_agent):
        return OSFamily.MAC
    if _WINDOWS_PATTERN.search(user_agent):
        return OSFamily.WINDOWS
    return OSFamily.OTHER


def is_update_request(query: Optional[Mapping[str, str]]) -> bool:
    """Флаг ?update: параметр присутствует и хотя бы одно значение не пустое"""
    if not query:
        return False
    try:
        if hasattr(query, 'getall'):
            return any(query.getall('update', []))
        value = query.get('update')
    except AttributeError:
        return False
    return bool(value)


def interpret_download_request(user_agent: Optional[str],
                               query: Optional[Mapping[str, str]]) -> Optional[PlatformKey]:
    """
    Выбор платформы для /download по сигналам клиента

    Args:
        user_agent: Заголовок User-Agent (может отсутствовать)
        query: Параметры запроса

    Returns:
        Optional[PlatformKey]: darwin / dmg / msi или None
    """
    family = detect_os_family(user_agent)
    update = is_update_request(query)

    if family is OSFamily.MAC and update:
        return PlatformKey.DARWIN
    if family is OSFamily.MAC:
        return PlatformKey.DMG
    if family is OSFamily.WINDOWS:
        return PlatformKey.MSI
    return None


def resolve_download_token(token: str, query: Optional[Mapping[str, str]]) -> Optional[PlatformKey]:
    """
    Платформа для /download/{platform}

    mac и mac_arm64 без ?update означают установщик (dmg / dmg_arm64).
    """
    if not is_update_request(query):
        token = _INSTALLER_REWRITES.get(token, token)
    return resolve(token)
