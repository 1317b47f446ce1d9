"""
Shared fixtures: a scripted host environment and a mocked requests session.
"""
import os
from typing import Any, Dict, List, Optional
from unittest.mock import MagicMock

import pytest

from zabbix_deploy.communication import HttpClient
from zabbix_deploy.config import ConfigManager
from zabbix_deploy.core import AGENT_SERVICE_NAME
from zabbix_deploy.system import Environment, InterfaceConfig


class FakeEnvironment(Environment):
    """Environment that records side effects instead of touching the host."""

    def __init__(self, temp_dir: str, hostname: str = "WIN-AGENT01",
                 services: Optional[Dict[str, str]] = None,
                 interfaces: Optional[List[InterfaceConfig]] = None,
                 exit_code: int = 0, listening: bool = True,
                 post_install_status: str = "running"):
        self._temp_dir = temp_dir
        self._hostname = hostname
        self.services = dict(services or {})
        self.interfaces = list(interfaces or [])
        self.exit_code = exit_code
        self.listening = listening
        self.post_install_status = post_install_status
        self.interface_queries = 0
        self.processes: List[List[str]] = []
        self.started: List[str] = []
        self.probes: List[Any] = []

    def hostname(self) -> str:
        return self._hostname

    def temp_dir(self) -> str:
        return self._temp_dir

    def service_status(self, name: str) -> Optional[str]:
        return self.services.get(name)

    def start_service(self, name: str) -> None:
        self.started.append(name)
        self.services[name] = "running"

    def run_process(self, args: List[str]) -> int:
        self.processes.append(list(args))
        if self.exit_code in (0, 3010):
            self.services[AGENT_SERVICE_NAME] = self.post_install_status
        return self.exit_code

    def list_interfaces(self) -> List[InterfaceConfig]:
        self.interface_queries += 1
        return list(self.interfaces)

    def probe_tcp_port(self, host: str, port: int, timeout: float = 2.0) -> bool:
        self.probes.append((host, port))
        return self.listening


def make_response(body: Any, status_code: int = 200) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = body
    response.text = str(body)
    return response


def make_download(session: MagicMock, content: bytes = b"MSI-PACKAGE") -> MagicMock:
    response = MagicMock()
    response.headers = {"content-length": str(len(content))}
    response.iter_content.return_value = [content]
    session.get.return_value.__enter__.return_value = response
    return response


@pytest.fixture
def fake_env(tmp_path) -> FakeEnvironment:
    return FakeEnvironment(temp_dir=str(tmp_path))


@pytest.fixture
def config() -> ConfigManager:
    return ConfigManager()


@pytest.fixture
def session() -> MagicMock:
    return MagicMock()


@pytest.fixture
def http_client(config, session) -> HttpClient:
    return HttpClient(config, session=session)


@pytest.fixture
def package_path(tmp_path) -> str:
    return os.path.join(str(tmp_path), "zabbix_agent.msi")
