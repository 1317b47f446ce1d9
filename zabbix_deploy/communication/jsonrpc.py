"""
JSON-RPC 2.0 envelopes and client for the Zabbix management API.
"""
import json
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import requests

from zabbix_deploy.communication.http_client import HttpClient
from zabbix_deploy.utils import get_logger, redact_payload

logger = get_logger(__name__)

JSONRPC_VERSION = "2.0"
API_PATH = "api_jsonrpc.php"


class JsonRpcError(RuntimeError):
    """
    The server answered with a JSON-RPC error envelope.

    :ivar code: Error code reported by the server.
    :ivar message: Short error message.
    :ivar data: Detailed error description, if any.
    """

    def __init__(self, method: str, code: Any, message: str, data: Any = None):
        self.method = method
        self.code = code
        self.message = message
        self.data = data
        detail = f" {data}" if data else ""
        super().__init__(f"{method} failed with error {code}: {message}{detail}")


class JsonRpcProtocolError(ValueError):
    """The response is not a usable JSON-RPC response."""


def build_api_url(server: str) -> str:
    """
    Builds the API endpoint URL for a server address.

    ``zbx.example.com`` becomes ``http://zbx.example.com/api_jsonrpc.php``.
    An address that already carries a scheme keeps it.

    :param server: Host name or address, optionally with port and path prefix
    :type server: str
    :return: The endpoint URL
    :rtype: str
    :raises ValueError: If the server address is empty
    """
    server = (server or "").strip().rstrip('/')
    if not server:
        raise ValueError("Monitoring server address must not be empty.")
    if "://" not in server:
        server = f"http://{server}"
    return f"{server}/{API_PATH}"


@dataclass
class JsonRpcRequest:
    method: str
    params: Dict[str, Any] = field(default_factory=dict)
    auth: Optional[str] = None
    id: int = 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "jsonrpc": JSONRPC_VERSION,
            "method": self.method,
            "params": self.params,
            "id": self.id,
            "auth": self.auth,
        }


@dataclass
class JsonRpcResponse:
    result: Any
    id: Any = None

    @classmethod
    def from_body(cls, method: str, body: Any) -> 'JsonRpcResponse':
        """
        Validates a decoded response body.

        :param method: The method that was called, for error messages
        :type method: str
        :param body: Decoded JSON response
        :type body: Any
        :return: The parsed response
        :rtype: JsonRpcResponse
        :raises JsonRpcError: If the body is an error envelope
        :raises JsonRpcProtocolError: If the body is neither a result nor an error envelope
        """
        if not isinstance(body, dict):
            raise JsonRpcProtocolError(f"{method}: expected a JSON object in response, got {type(body).__name__}.")

        error = body.get("error")
        if error is not None:
            if isinstance(error, dict):
                raise JsonRpcError(method, error.get("code"), str(error.get("message", "")), error.get("data"))
            raise JsonRpcError(method, None, str(error))

        if "result" not in body:
            raise JsonRpcProtocolError(f"{method}: response has neither 'result' nor 'error'.")
        return cls(result=body["result"], id=body.get("id"))


class JsonRpcClient:
    """
    Sends JSON-RPC requests to a single Zabbix API endpoint.
    """

    def __init__(self, server: str, http_client: HttpClient):
        self.url = build_api_url(server)
        self.http_client = http_client

    def call(self, request: JsonRpcRequest) -> Any:
        """
        Sends a request and returns the ``result`` member of the response.

        :param request: The request envelope
        :type request: JsonRpcRequest
        :return: The method result
        :rtype: Any
        :raises requests.RequestException: On transport errors
        :raises JsonRpcError: If the server reports an error
        :raises JsonRpcProtocolError: If the response cannot be interpreted
        """
        payload = request.to_dict()
        logger.debug(f"JSON-RPC request to {self.url}: {json.dumps(redact_payload(payload))}")

        try:
            body = self.http_client.post_json(self.url, payload)
        except requests.RequestException:
            raise
        except ValueError as e:
            raise JsonRpcProtocolError(f"{request.method}: {e}") from e

        try:
            response = JsonRpcResponse.from_body(request.method, body)
        except JsonRpcError as e:
            logger.error(str(e))
            raise
        logger.debug(f"JSON-RPC {request.method} succeeded.")
        return response.result
