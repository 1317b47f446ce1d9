"""
Host environment access for the Zabbix deployment tool.

Every read of ambient operating-system state (machine name, temp directory,
services, network configuration, child processes) goes through an
``Environment`` instance, so installer and registrar logic can be exercised
against a substitute implementation.
"""
import json
import os
import socket
import subprocess
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, List, Optional

import psutil

from zabbix_deploy.utils import get_logger

logger = get_logger(__name__)

SERVICE_START_TIMEOUT_SEC = 30

IP_CONFIGURATION_SCRIPT = (
    "Get-NetIPConfiguration | Select-Object "
    "InterfaceIndex, InterfaceAlias, "
    "@{n='IPv4Address';e={$_.IPv4Address.IPAddress}}, "
    "@{n='IPv4DefaultGateway';e={$_.IPv4DefaultGateway.NextHop}}, "
    "@{n='Status';e={$_.NetAdapter.Status}} "
    "| ConvertTo-Json -Compress"
)


@dataclass
class InterfaceConfig:
    """IP configuration of one network interface."""
    index: int
    alias: str
    ipv4: Optional[str]
    gateway: Optional[str]
    status: str


def _first(value: Any) -> Optional[str]:
    if isinstance(value, list):
        value = next((item for item in value if item), None)
    return str(value) if value else None


def parse_ip_configuration(output: str) -> List[InterfaceConfig]:
    """
    Parses the JSON emitted by ``Get-NetIPConfiguration | ConvertTo-Json``.

    PowerShell serializes a single interface as an object rather than a
    one-element array, and an interface with several addresses as an array
    of addresses; both shapes are accepted.

    :param output: Raw JSON text
    :type output: str
    :return: Interfaces in enumeration order
    :rtype: List[InterfaceConfig]
    :raises ValueError: If the output is not valid JSON
    """
    if not output or not output.strip():
        return []
    data = json.loads(output)
    if isinstance(data, dict):
        data = [data]

    interfaces = []
    for entry in data:
        if not isinstance(entry, dict):
            continue
        interfaces.append(InterfaceConfig(
            index=int(entry.get("InterfaceIndex") or 0),
            alias=str(entry.get("InterfaceAlias") or ""),
            ipv4=_first(entry.get("IPv4Address")),
            gateway=_first(entry.get("IPv4DefaultGateway")),
            status=str(entry.get("Status") or ""),
        ))
    return interfaces


class Environment(ABC):
    """
    Abstract provider of the host state the deployment operations depend on.
    """

    @abstractmethod
    def hostname(self) -> str:
        """Returns the local machine name."""

    @abstractmethod
    def temp_dir(self) -> str:
        """Returns the system temp directory."""

    def path_exists(self, path: str) -> bool:
        return os.path.exists(path)

    @abstractmethod
    def service_status(self, name: str) -> Optional[str]:
        """
        Looks up an OS service by name.

        :param name: Service name
        :type name: str
        :return: Lower-case status such as ``"running"`` or ``"stopped"``, or None if no such service exists
        :rtype: Optional[str]
        """

    @abstractmethod
    def start_service(self, name: str) -> None:
        """Starts an installed service and waits until it reports running."""

    @abstractmethod
    def run_process(self, args: List[str]) -> int:
        """
        Runs a process to completion.

        :param args: Executable and arguments
        :type args: List[str]
        :return: The process exit code
        :rtype: int
        """

    @abstractmethod
    def list_interfaces(self) -> List[InterfaceConfig]:
        """Enumerates the IP configuration of the host's network interfaces."""

    def probe_tcp_port(self, host: str, port: int, timeout: float = 2.0) -> bool:
        """
        Checks whether something accepts TCP connections on host:port.

        :return: True if a connection could be opened
        :rtype: bool
        """
        try:
            with socket.create_connection((host, port), timeout=timeout):
                return True
        except OSError as e:
            logger.debug(f"TCP probe of {host}:{port} failed: {e}")
            return False


class WindowsEnvironment(Environment):
    """
    Environment backed by the local Windows host.
    """

    def hostname(self) -> str:
        return socket.gethostname()

    def temp_dir(self) -> str:
        return tempfile.gettempdir()

    def service_status(self, name: str) -> Optional[str]:
        try:
            service = psutil.win_service_get(name)
            status = service.status()
        except psutil.NoSuchProcess:
            logger.debug(f"Service '{name}' is not installed.")
            return None
        logger.debug(f"Service '{name}' status: {status}")
        return str(status).lower()

    def start_service(self, name: str) -> None:
        import win32service
        import win32serviceutil

        logger.info(f"Starting service '{name}'...")
        win32serviceutil.StartService(name)
        win32serviceutil.WaitForServiceStatus(name, win32service.SERVICE_RUNNING, SERVICE_START_TIMEOUT_SEC)
        logger.info(f"Service '{name}' is running.")

    def run_process(self, args: List[str]) -> int:
        logger.debug(f"Running process: {args[0]} ({len(args) - 1} arguments)")
        process = subprocess.run(
            args,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            check=False,
            creationflags=subprocess.CREATE_NO_WINDOW
        )
        logger.debug(f"Process {args[0]} exited with code {process.returncode}")
        return process.returncode

    def list_interfaces(self) -> List[InterfaceConfig]:
        command = ["powershell", "-NoProfile", "-NonInteractive", "-Command", IP_CONFIGURATION_SCRIPT]
        result = subprocess.run(
            command,
            capture_output=True,
            text=True,
            check=False,
            creationflags=subprocess.CREATE_NO_WINDOW
        )
        if result.returncode != 0:
            msg = f"Get-NetIPConfiguration failed with code {result.returncode}: {result.stderr.strip()}"
            logger.error(msg)
            raise RuntimeError(msg)

        interfaces = parse_ip_configuration(result.stdout)
        logger.debug(f"Enumerated {len(interfaces)} network interface(s).")
        return interfaces

