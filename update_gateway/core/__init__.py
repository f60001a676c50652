"""
Core components для Update Gateway
"""

from .gateway_manager import UpdateGatewayManager, ModuleStatus

__all__ = ['UpdateGatewayManager', 'ModuleStatus']
