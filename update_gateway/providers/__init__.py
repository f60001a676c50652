"""
Providers для Update Gateway
"""

from .update_server_provider import UpdateServerProvider
from .snapshot_provider import (
    SnapshotAccessor,
    StaticSnapshotProvider,
    FileSnapshotProvider,
    ReleaseSnapshot,
    PlatformAsset,
)
from .version_provider import VersionProvider
from .platform_provider import PlatformKey

__all__ = [
    'UpdateServerProvider',
    'SnapshotAccessor',
    'StaticSnapshotProvider',
    'FileSnapshotProvider',
    'ReleaseSnapshot',
    'PlatformAsset',
    'VersionProvider',
    'PlatformKey'
]
