"""
Idempotent installation of the Zabbix agent Windows service.
"""
import os
from dataclasses import dataclass
from typing import List, Optional

from zabbix_deploy.communication import HttpClient
from zabbix_deploy.config import DEFAULT_AGENT_URL, DEFAULT_LISTEN_PORT
from zabbix_deploy.system import Environment
from zabbix_deploy.utils import get_logger, normalize_server_list

logger = get_logger(__name__)

AGENT_SERVICE_NAME = "Zabbix Agent"
PACKAGE_FILENAME = "zabbix_agent.msi"
INSTALL_LOG_FILENAME = "zabbix_agent_install.log"
MSIEXEC = "msiexec"
LOOPBACK_ADDRESS = "127.0.0.1"

# psutil WindowsService.status() values
SERVICE_RUNNING = "running"
SERVICE_STOPPED = "stopped"
PENDING_STATUSES = ("start_pending", "stop_pending", "continue_pending", "pause_pending")

# 1641: success, reboot initiated; 3010: success, reboot required
MSI_SUCCESS_CODES = (0, 1641, 3010)


class InstallerError(RuntimeError):
    """The package installer exited with a failure code."""

    def __init__(self, exit_code: int, log_path: str):
        self.exit_code = exit_code
        self.log_path = log_path
        super().__init__(f"Agent installer exited with code {exit_code}. See {log_path} for details.")


@dataclass
class InstallerRequest:
    """
    Parameters of one agent installation.

    ``local_path`` takes precedence over ``source_url`` when both are given.
    """
    server_allow_list: str
    active_server: Optional[str] = None
    listen_port: int = DEFAULT_LISTEN_PORT
    source_url: str = DEFAULT_AGENT_URL
    local_path: Optional[str] = None
    hostname: Optional[str] = None

    def __post_init__(self):
        self.server_allow_list = normalize_server_list(self.server_allow_list)
        if self.active_server is not None:
            self.active_server = "".join(self.active_server.split()) or None
        if isinstance(self.listen_port, bool) or not isinstance(self.listen_port, int) or not 0 < self.listen_port < 65536:
            raise ValueError(f"Invalid listen port: {self.listen_port!r}. Must be an integer between 1 and 65535.")
        if not self.local_path and not self.source_url:
            raise ValueError("Either a download URL or a local package path is required.")


@dataclass
class InstallResult:
    package_path: Optional[str] = None
    downloaded: bool = False
    installed: bool = False
    started: bool = False
    listening: bool = False


def build_install_command(package_path: str, log_path: str, request: InstallerRequest) -> List[str]:
    """
    Builds the silent ``msiexec`` command line for the agent package.

    :param package_path: Path of the MSI package
    :type package_path: str
    :param log_path: Path of the verbose install log
    :type log_path: str
    :param request: Installation parameters
    :type request: InstallerRequest
    :return: Executable and arguments
    :rtype: List[str]
    """
    command = [
        MSIEXEC,
        "/l*v", log_path,
        "/i", package_path,
        "/qn",
        f"SERVER={request.server_allow_list}",
        f"LISTENPORT={request.listen_port}",
    ]
    if request.active_server:
        command.append(f"SERVERACTIVE={request.active_server}")
    if request.hostname:
        command.append(f"HOSTNAME={request.hostname}")
    return command


class AgentInstaller:
    """
    Ensures the agent package is present and its service installed and running.

    All host access goes through the injected environment and HTTP client.
    """

    def __init__(self, environment: Environment, http_client: HttpClient, service_name: str = AGENT_SERVICE_NAME):
        self.environment = environment
        self.http_client = http_client
        self.service_name = service_name

    def default_package_path(self) -> str:
        return os.path.join(self.environment.temp_dir(), PACKAGE_FILENAME)

    def install_log_path(self) -> str:
        return os.path.join(self.environment.temp_dir(), INSTALL_LOG_FILENAME)

    def resolve_package(self, request: InstallerRequest) -> str:
        """
        Returns the package path to install from.

        :raises FileNotFoundError: If an explicit local package does not exist
        """
        if request.local_path:
            if not self.environment.path_exists(request.local_path):
                raise FileNotFoundError(f"Agent package not found: {request.local_path}")
            return request.local_path
        return self.default_package_path()

    def ensure_installed(self, request: InstallerRequest) -> InstallResult:
        """
        Installs and starts the agent service unless it is already present.

        An existing service short-circuits the package lookup, download and
        install steps; an existing package file short-circuits the download.
        Only a stopped service is started. The loopback port probe at the end
        is informational only.

        :param request: Installation parameters
        :type request: InstallerRequest
        :return: What was done
        :rtype: InstallResult
        :raises requests.RequestException: If the package download fails
        :raises InstallerError: If msiexec exits with a failure code
        """
        result = InstallResult()

        status = self.environment.service_status(self.service_name)
        if status is not None:
            logger.info(f"Service '{self.service_name}' is already installed (status: {status}). Skipping installation.")
        else:
            package_path = self.resolve_package(request)
            result.package_path = package_path
            if self.environment.path_exists(package_path):
                logger.info(f"Agent package already present at {package_path}. Skipping download.")
            else:
                self.http_client.download_file(request.source_url, package_path)
                result.downloaded = True

            self._run_installer(package_path, request)
            result.installed = True
            status = self.environment.service_status(self.service_name)

        if status == SERVICE_STOPPED:
            self.environment.start_service(self.service_name)
            result.started = True
        elif status in PENDING_STATUSES:
            logger.info(f"Service '{self.service_name}' is {status}; leaving it to the service manager.")
        elif status is not None and status != SERVICE_RUNNING:
            logger.warning(f"Service '{self.service_name}' is {status}; not starting it.")

        result.listening = self.environment.probe_tcp_port(LOOPBACK_ADDRESS, request.listen_port)
        if result.listening:
            logger.info(f"Agent is accepting connections on {LOOPBACK_ADDRESS}:{request.listen_port}.")
        else:
            logger.warning(f"Nothing is listening on {LOOPBACK_ADDRESS}:{request.listen_port} yet.")
        return result

    def _run_installer(self, package_path: str, request: InstallerRequest) -> None:
        log_path = self.install_log_path()
        command = build_install_command(package_path, log_path, request)

        logger.info(f"Installing agent from {package_path} (log: {log_path})...")
        exit_code = self.environment.run_process(command)
        if exit_code not in MSI_SUCCESS_CODES:
            logger.error(f"msiexec exited with code {exit_code}. Install log: {log_path}")
            raise InstallerError(exit_code, log_path)
        if exit_code != 0:
            logger.warning(f"Agent installed; msiexec reported code {exit_code} (reboot required).")
        else:
            logger.info("Agent installed successfully.")
