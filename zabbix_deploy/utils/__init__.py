"""
Utility functions for the Zabbix deployment tool.
"""
from zabbix_deploy.utils.logger import get_logger, setup_logger
from zabbix_deploy.utils.utils import normalize_server_list, redact_payload, split_id_list

__all__ = [
    'get_logger',
    'setup_logger',
    'normalize_server_list',
    'redact_payload',
    'split_id_list'
]
