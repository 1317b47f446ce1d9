import os
import shutil
import tempfile
import time
from typing import Any, Dict, Optional, TYPE_CHECKING

import requests

if TYPE_CHECKING:
    from zabbix_deploy.config import ConfigManager

from zabbix_deploy.utils import get_logger
from zabbix_deploy.version import __version__

logger = get_logger(__name__)

USER_AGENT = f"ZabbixDeploy/{__version__}"


class HttpClient:
    """
    Thin synchronous HTTP client used for package downloads and JSON-RPC calls.

    Transport failures are logged and re-raised as ``requests`` exceptions;
    callers decide how to report them.

    :ivar timeout: The default request timeout in seconds.
    :ivar session: The underlying ``requests.Session``.
    """

    def __init__(self, config: 'ConfigManager', session: Optional[requests.Session] = None):
        """
        Initializes the HTTP client.

        :param config: The configuration manager instance.
        :type config: ConfigManager
        :param session: Session to send requests through; a new one is created if omitted.
        :type session: Optional[requests.Session]
        """
        self.timeout = config.get('http_client.request_timeout_sec', 15)
        self.session = session if session is not None else requests.Session()
        self.session.headers['User-Agent'] = USER_AGENT
        logger.debug(f"HTTP client initialized. Timeout: {self.timeout}s")

    def post_json(self, url: str, payload: Dict[str, Any]) -> Any:
        """
        POSTs a JSON document and returns the decoded JSON response.

        :param url: Absolute endpoint URL.
        :type url: str
        :param payload: JSON-serializable request body.
        :type payload: Dict[str, Any]
        :return: The decoded response body.
        :rtype: Any
        :raises requests.RequestException: On connection failures, timeouts and non-2xx statuses.
        :raises ValueError: If the response body is not valid JSON.
        """
        headers = {'Content-Type': 'application/json'}
        try:
            response = self.session.post(url, json=payload, headers=headers, timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.Timeout:
            logger.error(f"Request timed out after {self.timeout}s: POST {url}")
            raise
        except requests.exceptions.ConnectionError as e:
            logger.error(f"Connection error: POST {url} - {e}")
            raise
        except requests.exceptions.HTTPError as e:
            status_code = e.response.status_code if e.response is not None else "unknown"
            logger.error(f"HTTP error {status_code}: POST {url}")
            raise

        try:
            body = response.json()
        except ValueError as e:
            logger.error(f"Failed to decode JSON response from POST {url} (Status: {response.status_code}). Response text: {response.text[:200]}...")
            raise ValueError(f"Invalid JSON response from {url}: {e}") from e

        logger.debug(f"Request successful ({response.status_code}): POST {url}")
        return body

    def download_file(self, url: str, save_path: str) -> str:
        """
        Downloads a file with a streaming GET, writing to a temporary file first.

        The destination only appears once the transfer has completed, so a
        failed download never leaves a partial file at ``save_path``.

        :param url: Absolute URL to download from.
        :type url: str
        :param save_path: The local filesystem path to save the downloaded file.
        :type save_path: str
        :return: ``save_path``
        :rtype: str
        :raises requests.RequestException: On network or HTTP errors.
        :raises OSError: On file system errors.
        """
        target_dir = os.path.dirname(os.path.abspath(save_path))
        os.makedirs(target_dir, exist_ok=True)
        temp_file_path: Optional[str] = None

        try:
            logger.info(f"Downloading {url} to {save_path}...")
            with self.session.get(url, stream=True, timeout=self.timeout * 4) as response:
                response.raise_for_status()

                with tempfile.NamedTemporaryFile(dir=target_dir, delete=False) as temp_file:
                    temp_file_path = temp_file.name

                    total_size = int(response.headers.get('content-length', 0))
                    downloaded = 0
                    last_log_time = time.time()

                    for chunk in response.iter_content(chunk_size=8192):
                        if chunk:
                            temp_file.write(chunk)
                            downloaded += len(chunk)
                            current_time = time.time()
                            if current_time - last_log_time > 3:
                                if total_size > 0:
                                    logger.debug(f"Download progress: {downloaded / total_size * 100:.1f}% ({downloaded}/{total_size} bytes)")
                                else:
                                    logger.debug(f"Download progress: {downloaded} bytes (total size unknown)")
                                last_log_time = current_time

            shutil.move(temp_file_path, save_path)
            temp_file_path = None
            logger.info(f"File downloaded successfully to {save_path} ({os.path.getsize(save_path)} bytes)")
            return save_path

        except requests.exceptions.RequestException as e:
            logger.error(f"Network error downloading {url}: {e}")
            raise
        except OSError as e:
            logger.error(f"File system error during download/save to {save_path}: {e}")
            raise
        finally:
            if temp_file_path and os.path.exists(temp_file_path):
                logger.warning(f"Cleaning up temporary download file: {temp_file_path}")
                try:
                    os.remove(temp_file_path)
                except OSError as e:
                    logger.error(f"Failed to remove temporary file {temp_file_path}: {e}")

    def close(self) -> None:
        self.session.close()
