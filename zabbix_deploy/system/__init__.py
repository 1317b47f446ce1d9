"""
Host system access for the Zabbix deployment tool.
"""
from zabbix_deploy.system.environment import (
    Environment,
    InterfaceConfig,
    WindowsEnvironment,
    parse_ip_configuration
)
from zabbix_deploy.system.network_info import (
    qualifying_interfaces,
    resolve_local_ipv4,
    select_primary_interface
)

__all__ = [
    'Environment',
    'InterfaceConfig',
    'WindowsEnvironment',
    'parse_ip_configuration',

    'qualifying_interfaces',
    'resolve_local_ipv4',
    'select_primary_interface'
]
