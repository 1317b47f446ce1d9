"""
Configuration management for the Zabbix deployment tool.
"""
from .config_manager import (
    ConfigManager,
    DEFAULT_AGENT_URL,
    DEFAULT_GROUP_ID,
    DEFAULT_LISTEN_PORT,
    DEFAULT_TEMPLATE_ID
)

__all__ = [
    'ConfigManager',
    'DEFAULT_AGENT_URL',
    'DEFAULT_GROUP_ID',
    'DEFAULT_LISTEN_PORT',
    'DEFAULT_TEMPLATE_ID'
]
