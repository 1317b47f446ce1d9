"""
Zabbix API operations: session login and host registration.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Union

from zabbix_deploy.communication.http_client import HttpClient
from zabbix_deploy.communication.jsonrpc import JsonRpcClient, JsonRpcProtocolError, JsonRpcRequest
from zabbix_deploy.config import DEFAULT_GROUP_ID, DEFAULT_LISTEN_PORT, DEFAULT_TEMPLATE_ID
from zabbix_deploy.system import Environment
from zabbix_deploy.utils import get_logger, split_id_list

logger = get_logger(__name__)

USER_LOGIN_METHOD = "user.login"
HOST_CREATE_METHOD = "host.create"

# host interface constants
INTERFACE_TYPE_AGENT = 1
INTERFACE_MAIN = 1
INTERFACE_USE_IP = 1

IdList = Union[str, int, Iterable[Union[str, int]], None]


def _validate_port(port: Union[str, int]) -> str:
    port = str(port).strip()
    if not port.isdigit() or not 0 < int(port) < 65536:
        raise ValueError(f"Invalid agent port: {port!r}. Must be between 1 and 65535.")
    return port


@dataclass
class UserLoginRequest:
    user: str
    password: str = field(repr=False)

    def __post_init__(self):
        if not self.user:
            raise ValueError("Username must not be empty.")

    def to_params(self) -> Dict[str, Any]:
        return {"user": self.user, "password": self.password}


@dataclass
class HostInterface:
    """Agent interface of a monitored host, addressed by IP."""
    ip: str
    dns: str = ""
    port: str = str(DEFAULT_LISTEN_PORT)

    def __post_init__(self):
        if not self.ip:
            raise ValueError("Host interface IP address must not be empty.")
        self.port = _validate_port(self.port)
        self.dns = self.dns or ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": INTERFACE_TYPE_AGENT,
            "main": INTERFACE_MAIN,
            "useip": INTERFACE_USE_IP,
            "ip": self.ip,
            "dns": self.dns,
            "port": self.port,
        }


@dataclass
class HostCreateRequest:
    host: str
    interface: HostInterface
    group_ids: List[str]
    template_ids: List[str]

    def __post_init__(self):
        if not self.host:
            raise ValueError("Host name must not be empty.")
        if not self.group_ids:
            raise ValueError("At least one host group id is required.")

    def to_params(self) -> Dict[str, Any]:
        return {
            "host": self.host,
            "interfaces": [self.interface.to_dict()],
            "groups": [{"groupid": group_id} for group_id in self.group_ids],
            "templates": [{"templateid": template_id} for template_id in self.template_ids],
        }


def get_token(server: str, username: str, password: str, http_client: HttpClient) -> str:
    """
    Logs in to the Zabbix API and returns the session token.

    :param server: Monitoring server host name or address
    :type server: str
    :param username: API user name
    :type username: str
    :param password: API password; used for this call only
    :type password: str
    :param http_client: HTTP client to send the request through
    :type http_client: HttpClient
    :return: The session token
    :rtype: str
    :raises JsonRpcError: If the server rejects the login
    :raises JsonRpcProtocolError: If the result is not a token string
    """
    login = UserLoginRequest(user=username, password=password)
    client = JsonRpcClient(server, http_client)

    logger.info(f"Logging in to {client.url} as '{username}'...")
    result = client.call(JsonRpcRequest(method=USER_LOGIN_METHOD, params=login.to_params()))

    if not isinstance(result, str) or not result:
        raise JsonRpcProtocolError(f"{USER_LOGIN_METHOD}: expected a token string, got {type(result).__name__}.")
    logger.info("Login successful.")
    return result


def register_host(
    server: str,
    token: str,
    ip: str,
    environment: Environment,
    http_client: HttpClient,
    template_ids: IdList = None,
    group_ids: IdList = None,
    port: Union[str, int] = DEFAULT_LISTEN_PORT,
    dns: str = "",
    hostname: Optional[str] = None
) -> List[str]:
    """
    Registers this machine as a monitored host via ``host.create``.

    :param server: Monitoring server host name or address
    :type server: str
    :param token: Session token from :func:`get_token`
    :type token: str
    :param ip: IP address the server should poll the agent on
    :type ip: str
    :param environment: Host environment provider, supplies the default host name
    :type environment: Environment
    :param http_client: HTTP client to send the request through
    :type http_client: HttpClient
    :param template_ids: Template id(s) to link; the stock Windows agent template if None
    :param group_ids: Host group id(s) to join; the stock operating systems group if None
    :param port: Agent port
    :param dns: DNS name of the agent interface
    :param hostname: Host name to register; defaults to the local machine name
    :return: Ids of the created hosts
    :rtype: List[str]
    :raises JsonRpcError: If the server rejects the request
    :raises JsonRpcProtocolError: If the result is not an object
    """
    if not token:
        raise ValueError("A session token is required to register a host.")

    request = HostCreateRequest(
        host=hostname or environment.hostname(),
        interface=HostInterface(ip=ip, dns=dns, port=str(port)),
        group_ids=split_id_list(DEFAULT_GROUP_ID if group_ids is None else group_ids),
        template_ids=split_id_list(DEFAULT_TEMPLATE_ID if template_ids is None else template_ids),
    )
    client = JsonRpcClient(server, http_client)

    logger.info(f"Registering host '{request.host}' ({ip}) with {len(request.group_ids)} group(s) and {len(request.template_ids)} template(s)...")
    result = client.call(JsonRpcRequest(method=HOST_CREATE_METHOD, params=request.to_params(), auth=token))

    if not isinstance(result, dict):
        raise JsonRpcProtocolError(f"{HOST_CREATE_METHOD}: expected an object result, got {type(result).__name__}.")

    host_ids = [str(host_id) for host_id in result.get("hostids") or []]
    if host_ids:
        logger.info(f"Host '{request.host}' registered with id(s): {', '.join(host_ids)}")
    else:
        logger.warning(f"Server returned no host ids for '{request.host}'.")
    return host_ids
