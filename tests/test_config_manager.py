"""
Tests for configuration loading.
"""
import json

import pytest

from zabbix_deploy.config import ConfigManager, DEFAULT_AGENT_URL


def _write(tmp_path, data):
    path = tmp_path / "deploy_config.json"
    path.write_text(json.dumps(data) if not isinstance(data, str) else data, encoding="utf-8")
    return str(path)


def test_defaults_without_file():
    config = ConfigManager()

    assert config.get('agent.listen_port') == 10050
    assert config.get('agent.download_url') == DEFAULT_AGENT_URL
    assert config.get('host.template_ids') == ["10081"]
    assert config.get('host.group_ids') == ["10"]
    assert config.get('username') == "Admin"
    assert config.get('server') is None


def test_file_values_override_defaults(tmp_path):
    path = _write(tmp_path, {"server": "zbx.local", "agent": {"listen_port": 10070}})

    config = ConfigManager(path)

    assert config.get('server') == "zbx.local"
    assert config.get('agent.listen_port') == 10070
    assert config.get('agent.download_url') == DEFAULT_AGENT_URL


def test_missing_key_returns_default():
    config = ConfigManager()

    assert config.get('agent.no_such_key', 'fallback') == 'fallback'
    assert config.get('agent.listen_port.deeper', 7) == 7


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        ConfigManager(str(tmp_path / "absent.json"))


def test_invalid_json_raises(tmp_path):
    with pytest.raises(ValueError):
        ConfigManager(_write(tmp_path, "{not json"))


def test_non_object_document_raises(tmp_path):
    with pytest.raises(ValueError):
        ConfigManager(_write(tmp_path, ["zbx.local"]))


def test_stored_password_is_rejected(tmp_path):
    with pytest.raises(ValueError):
        ConfigManager(_write(tmp_path, {"server": "zbx.local", "password": "zabbix"}))


@pytest.mark.parametrize("port", [0, 65536, "10050", True])
def test_invalid_listen_port_is_rejected(tmp_path, port):
    with pytest.raises(ValueError):
        ConfigManager(_write(tmp_path, {"agent": {"listen_port": port}}))


def test_all_config_is_a_copy():
    config = ConfigManager()

    snapshot = config.all_config
    snapshot["agent"]["listen_port"] = 1

    assert config.get('agent.listen_port') == 10050
