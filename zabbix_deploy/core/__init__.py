"""
Core deployment operations for the Zabbix deployment tool.
"""
from .agent_installer import (
    AGENT_SERVICE_NAME,
    AgentInstaller,
    InstallerError,
    InstallerRequest,
    InstallResult,
    build_install_command
)

__all__ = [
    'AGENT_SERVICE_NAME',
    'AgentInstaller',
    'InstallerError',
    'InstallerRequest',
    'InstallResult',
    'build_install_command'
]
