"""
Update Gateway - сервер раздачи обновлений для десктопных клиентов

Модуль предоставляет функциональность для:
- Выдачи установщиков по платформе (/download, /download/{platform})
- Проверки обновлений для Squirrel.Mac (/update/{platform}/{version})
- Раздачи RELEASES и nupkg для Squirrel.Windows
- Страницы с обзором последнего релиза

Данные о релизе поставляет внешний провайдер снимков (load_cache)
"""

from .core.gateway_manager import UpdateGatewayManager
from .config import UpdateGatewayConfig

__all__ = ['UpdateGatewayManager', 'UpdateGatewayConfig']
__version__ = '1.0.0'
