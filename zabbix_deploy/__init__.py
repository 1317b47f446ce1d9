"""
Zabbix Deploy

Provisioning helpers for Windows hosts monitored by Zabbix:

- AgentInstaller: downloads and silently installs the agent service
- resolve_local_ipv4: finds the address of the primary network interface
- get_token / register_host: Zabbix JSON-RPC login and host registration
"""
from .version import __version__, __app_name__

from .communication import HttpClient, JsonRpcError, JsonRpcProtocolError, get_token, register_host
from .config import ConfigManager
from .core import AgentInstaller, InstallerError, InstallerRequest, InstallResult
from .system import Environment, InterfaceConfig, WindowsEnvironment, resolve_local_ipv4

__all__ = [
    '__version__',
    '__app_name__',

    'HttpClient',
    'JsonRpcError',
    'JsonRpcProtocolError',
    'get_token',
    'register_host',

    'ConfigManager',

    'AgentInstaller',
    'InstallerError',
    'InstallerRequest',
    'InstallResult',

    'Environment',
    'InterfaceConfig',
    'WindowsEnvironment',
    'resolve_local_ipv4'
]
