"""
Tests for the idempotent agent installer.
"""
import os

import pytest
import requests

from zabbix_deploy.config import DEFAULT_AGENT_URL
from zabbix_deploy.core import (
    AGENT_SERVICE_NAME,
    AgentInstaller,
    InstallerError,
    InstallerRequest,
    build_install_command
)
from tests.conftest import make_download


@pytest.fixture
def installer(fake_env, http_client):
    return AgentInstaller(fake_env, http_client)


def test_existing_package_is_not_downloaded(installer, fake_env, session, package_path):
    with open(package_path, "wb") as f:
        f.write(b"cached")

    result = installer.ensure_installed(InstallerRequest(server_allow_list="10.0.0.5"))

    session.get.assert_not_called()
    assert result.downloaded is False
    assert result.installed is True
    assert len(fake_env.processes) == 1


def test_missing_package_is_downloaded_then_installed(installer, fake_env, session, package_path):
    make_download(session, b"MSI-PACKAGE")

    result = installer.ensure_installed(InstallerRequest(server_allow_list="10.0.0.5"))

    assert session.get.call_args[0][0] == DEFAULT_AGENT_URL
    assert result.downloaded is True
    assert result.package_path == package_path
    with open(package_path, "rb") as f:
        assert f.read() == b"MSI-PACKAGE"
    assert fake_env.processes[0][fake_env.processes[0].index("/i") + 1] == package_path


def test_installed_service_skips_download_and_install(installer, fake_env, session):
    fake_env.services[AGENT_SERVICE_NAME] = "running"

    result = installer.ensure_installed(InstallerRequest(server_allow_list="10.0.0.5"))

    session.get.assert_not_called()
    assert fake_env.processes == []
    assert fake_env.started == []
    assert result.installed is False
    assert result.listening is True


def test_stopped_service_is_started(installer, fake_env):
    fake_env.services[AGENT_SERVICE_NAME] = "stopped"

    result = installer.ensure_installed(InstallerRequest(server_allow_list="10.0.0.5"))

    assert fake_env.processes == []
    assert fake_env.started == [AGENT_SERVICE_NAME]
    assert result.started is True


def test_second_invocation_has_no_side_effects(installer, fake_env, session):
    make_download(session)
    request = InstallerRequest(server_allow_list="10.0.0.5", active_server="10.0.0.5")

    installer.ensure_installed(request)
    assert session.get.call_count == 1
    assert len(fake_env.processes) == 1

    result = installer.ensure_installed(request)

    assert session.get.call_count == 1
    assert len(fake_env.processes) == 1
    assert fake_env.started == []
    assert result.downloaded is False
    assert result.installed is False


def test_port_probe_targets_loopback_and_is_advisory(installer, fake_env, package_path):
    open(package_path, "wb").close()
    fake_env.listening = False

    result = installer.ensure_installed(InstallerRequest(server_allow_list="10.0.0.5", listen_port=10055))

    assert fake_env.probes == [("127.0.0.1", 10055)]
    assert result.installed is True
    assert result.listening is False


def test_failed_installer_raises(installer, fake_env, package_path, tmp_path):
    open(package_path, "wb").close()
    fake_env.exit_code = 1603

    with pytest.raises(InstallerError) as excinfo:
        installer.ensure_installed(InstallerRequest(server_allow_list="10.0.0.5"))

    assert excinfo.value.exit_code == 1603
    assert excinfo.value.log_path == os.path.join(str(tmp_path), "zabbix_agent_install.log")


def test_reboot_required_exit_code_counts_as_success(installer, fake_env, package_path):
    open(package_path, "wb").close()
    fake_env.exit_code = 3010

    result = installer.ensure_installed(InstallerRequest(server_allow_list="10.0.0.5"))

    assert result.installed is True


def test_download_failure_propagates_without_install(installer, fake_env, session, package_path):
    response = make_download(session)
    response.raise_for_status.side_effect = requests.HTTPError("404 Client Error")

    with pytest.raises(requests.HTTPError):
        installer.ensure_installed(InstallerRequest(server_allow_list="10.0.0.5"))

    assert fake_env.processes == []
    assert not os.path.exists(package_path)


def test_local_package_wins_over_url(installer, fake_env, session, tmp_path):
    local = tmp_path / "downloads" / "agent.msi"
    local.parent.mkdir()
    local.write_bytes(b"local")

    result = installer.ensure_installed(
        InstallerRequest(server_allow_list="10.0.0.5", source_url="http://example.invalid/a.msi", local_path=str(local))
    )

    session.get.assert_not_called()
    assert result.package_path == str(local)
    assert str(local) in fake_env.processes[0]


def test_missing_local_package_raises(installer, fake_env, tmp_path):
    with pytest.raises(FileNotFoundError):
        installer.ensure_installed(
            InstallerRequest(server_allow_list="10.0.0.5", local_path=str(tmp_path / "missing.msi"))
        )
    assert fake_env.processes == []


def test_installed_service_ignores_deleted_local_package(installer, fake_env, session, tmp_path):
    fake_env.services[AGENT_SERVICE_NAME] = "running"

    result = installer.ensure_installed(
        InstallerRequest(server_allow_list="10.0.0.5", local_path=str(tmp_path / "gone.msi"))
    )

    assert result.installed is False
    assert result.package_path is None
    assert fake_env.processes == []
    session.get.assert_not_called()


@pytest.mark.parametrize("status", ["start_pending", "continue_pending", "stop_pending", "paused"])
def test_service_that_is_not_stopped_is_left_alone(installer, fake_env, status):
    fake_env.services[AGENT_SERVICE_NAME] = status

    result = installer.ensure_installed(InstallerRequest(server_allow_list="10.0.0.5"))

    assert fake_env.started == []
    assert result.started is False
    assert result.installed is False


def test_service_starting_after_install_is_not_started_again(installer, fake_env, package_path):
    open(package_path, "wb").close()
    fake_env.post_install_status = "start_pending"

    result = installer.ensure_installed(InstallerRequest(server_allow_list="10.0.0.5"))

    assert result.installed is True
    assert fake_env.started == []


def test_install_command_carries_agent_settings():
    request = InstallerRequest(server_allow_list=" 10.0.0.5 , zbx.local ", active_server="zbx.local:10051", listen_port=10060)

    command = build_install_command("C:\\Temp\\zabbix_agent.msi", "C:\\Temp\\install.log", request)

    assert command[:6] == ["msiexec", "/l*v", "C:\\Temp\\install.log", "/i", "C:\\Temp\\zabbix_agent.msi", "/qn"]
    assert "SERVER=10.0.0.5,zbx.local" in command
    assert "LISTENPORT=10060" in command
    assert "SERVERACTIVE=zbx.local:10051" in command


def test_install_command_omits_unset_optional_settings():
    command = build_install_command("agent.msi", "install.log", InstallerRequest(server_allow_list="10.0.0.5"))

    assert not any(arg.startswith("SERVERACTIVE=") for arg in command)
    assert not any(arg.startswith("HOSTNAME=") for arg in command)
    assert "LISTENPORT=10050" in command


@pytest.mark.parametrize("kwargs", [
    {"server_allow_list": "  "},
    {"server_allow_list": ", ,"},
    {"server_allow_list": "10.0.0.5", "listen_port": 0},
    {"server_allow_list": "10.0.0.5", "listen_port": 70000},
    {"server_allow_list": "10.0.0.5", "source_url": "", "local_path": None},
])
def test_invalid_requests_are_rejected(kwargs):
    with pytest.raises(ValueError):
        InstallerRequest(**kwargs)
