"""
Communication with the download host and the Zabbix management API.
"""
from .http_client import HttpClient
from .jsonrpc import JsonRpcClient, JsonRpcError, JsonRpcProtocolError, JsonRpcRequest, build_api_url
from .zabbix_api import HostCreateRequest, HostInterface, UserLoginRequest, get_token, register_host

__all__ = [
    'HttpClient',
    'JsonRpcClient',
    'JsonRpcError',
    'JsonRpcProtocolError',
    'JsonRpcRequest',
    'build_api_url',
    'HostCreateRequest',
    'HostInterface',
    'UserLoginRequest',
    'get_token',
    'register_host'
]
