"""
Configuration Manager module for the Zabbix deployment tool.
"""
import copy
import json
import os
from typing import Any, Optional, Dict

from ..utils import get_logger

logger = get_logger(__name__)

DEFAULT_AGENT_URL = "https://cdn.zabbix.com/zabbix/binaries/stable/6.0/6.0.36/zabbix_agent-6.0.36-windows-amd64-openssl.msi"
DEFAULT_LISTEN_PORT = 10050
DEFAULT_TEMPLATE_ID = "10081"
DEFAULT_GROUP_ID = "10"

DEFAULT_CONFIG: Dict[str, Any] = {
    "server": None,
    "username": "Admin",
    "agent": {
        "server_allow_list": None,
        "active_server": None,
        "listen_port": DEFAULT_LISTEN_PORT,
        "download_url": DEFAULT_AGENT_URL,
        "local_package": None,
    },
    "host": {
        "template_ids": [DEFAULT_TEMPLATE_ID],
        "group_ids": [DEFAULT_GROUP_ID],
        "dns": "",
    },
    "http_client": {
        "request_timeout_sec": 15,
    },
    "logging": {
        "console_level": "INFO",
        "file_level": "DEBUG",
        "file_path": None,
    },
}

FORBIDDEN_KEYS = ("password",)


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class ConfigManager:
    """
    Loads deployment settings from an optional JSON file layered over built-in defaults.
    """

    def __init__(self, config_path: Optional[str] = None):
        """
        Initializes the ConfigManager, loading the configuration file if one is given.

        :param config_path: The path to a JSON configuration file, or None to use defaults only
        :type config_path: Optional[str]
        :raises: FileNotFoundError if the configuration file path is provided but does not exist
        :raises: ValueError if the configuration file is invalid JSON or holds forbidden keys
        """
        self._config_path = config_path

        if self._config_path is None:
            logger.debug("ConfigManager initialized without a config path (defaults only).")
            self._config_data = copy.deepcopy(DEFAULT_CONFIG)
        else:
            self._config_data = _merge(DEFAULT_CONFIG, self._load_config())
            self._validate_config()
            logger.info(f"Configuration loaded successfully from: {self._config_path}")

    def _load_config(self) -> Dict[str, Any]:
        """
        Loads the configuration data from the JSON file.

        :return: The parsed configuration object
        :rtype: Dict[str, Any]
        :raises: FileNotFoundError if the file doesn't exist
        :raises: ValueError if there are JSON parsing errors
        """
        if not os.path.exists(self._config_path):
            logger.critical(f"Configuration file not found: {self._config_path}")
            raise FileNotFoundError(f"Configuration file not found: {self._config_path}")

        try:
            with open(self._config_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.critical(f"Error decoding JSON from config file {self._config_path}: {e}")
            raise ValueError(f"Invalid JSON in configuration file: {e}") from e
        except OSError as e:
            logger.critical(f"Error reading config file {self._config_path}: {e}")
            raise ValueError(f"Could not read configuration file: {e}") from e

        if not isinstance(data, dict):
            raise ValueError("Configuration file content is not a valid JSON object.")
        return data

    def _validate_config(self):
        """
        Performs basic validation of the loaded configuration.

        :raises: ValueError if credentials are present or values have the wrong type
        """
        for key in FORBIDDEN_KEYS:
            if self.get(key) is not None:
                msg = f"'{key}' must not be stored in the configuration file."
                logger.critical(msg)
                raise ValueError(msg)

        listen_port = self.get('agent.listen_port')
        if not isinstance(listen_port, int) or isinstance(listen_port, bool) or not 0 < listen_port < 65536:
            msg = f"Invalid 'agent.listen_port' configuration: {listen_port!r}. Must be an integer between 1 and 65535."
            logger.critical(msg)
            raise ValueError(msg)

        timeout = self.get('http_client.request_timeout_sec')
        if not isinstance(timeout, (int, float)) or timeout <= 0:
            msg = f"Invalid 'http_client.request_timeout_sec' configuration: {timeout!r}. Must be a positive number."
            logger.critical(msg)
            raise ValueError(msg)

        logger.debug("Basic configuration validation passed.")

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Retrieves a configuration value using a dot-separated key path.

        :param key_path: The dot-separated path to the configuration key
        :type key_path: str
        :param default: The default value to return if the key is not found
        :type default: Any
        :return: The configuration value or the default value
        :rtype: Any
        """
        value: Any = self._config_data
        for key in key_path.split('.'):
            if not isinstance(value, dict) or key not in value:
                logger.debug(f"Configuration key not found: '{key_path}'. Returning default: {default}")
                return default
            value = value[key]
        return default if value is None else value

    @property
    def all_config(self) -> Dict[str, Any]:
        """
        Returns a copy of the entire configuration dictionary.

        :return: Copy of configuration dictionary
        :rtype: Dict[str, Any]
        """
        return copy.deepcopy(self._config_data)
