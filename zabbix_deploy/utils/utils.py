"""
Utility functions for the Zabbix deployment tool.
"""
from typing import Any, Iterable, List, Union

REDACTED = "***"
SENSITIVE_KEYS = ("auth", "password")


def split_id_list(value: Union[str, int, Iterable[Union[str, int]], None]) -> List[str]:
    """
    Normalize an identifier argument into a list of strings.

    Accepts a single id, a comma-separated string or any iterable of ids.
    Whitespace is stripped and empty entries are dropped.

    :param value: The raw identifier value(s)
    :type value: Union[str, int, Iterable[Union[str, int]], None]
    :return: List of identifier strings
    :rtype: List[str]
    """
    if value is None:
        return []
    if isinstance(value, (str, int)):
        items = str(value).split(',')
    else:
        items = []
        for item in value:
            items.extend(str(item).split(','))
    return [item.strip() for item in items if item.strip()]


def normalize_server_list(value: str) -> str:
    """
    Strip whitespace from a comma-delimited list of server addresses.

    :param value: Comma-delimited IPs or host names, e.g. ``"10.0.0.5, zbx.local"``
    :type value: str
    :return: The same list without whitespace, e.g. ``"10.0.0.5,zbx.local"``
    :rtype: str
    :raises ValueError: If the list contains no server entries
    """
    entries = [entry for entry in "".join((value or "").split()).split(',') if entry]
    if not entries:
        raise ValueError("Server allow-list must contain at least one IP address or host name.")
    return ",".join(entries)


def redact_payload(data: Any, sensitive_keys: Iterable[str] = SENSITIVE_KEYS) -> Any:
    """
    Return a copy of a JSON-like structure with secret values masked.

    :param data: Dict/list structure to copy
    :type data: Any
    :param sensitive_keys: Keys whose non-empty values are replaced
    :type sensitive_keys: Iterable[str]
    :return: Redacted copy, safe for logging
    :rtype: Any
    """
    keys = set(sensitive_keys)
    if isinstance(data, dict):
        return {
            key: (REDACTED if key in keys and value is not None else redact_payload(value, keys))
            for key, value in data.items()
        }
    if isinstance(data, list):
        return [redact_payload(item, keys) for item in data]
    return data
