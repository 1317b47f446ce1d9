"""
Resolution of the host's primary IPv4 address.
"""
from typing import List, Optional

from zabbix_deploy.system.environment import Environment, InterfaceConfig
from zabbix_deploy.utils import get_logger

logger = get_logger(__name__)

DISCONNECTED_STATUS = "disconnected"


def qualifying_interfaces(interfaces: List[InterfaceConfig]) -> List[InterfaceConfig]:
    """
    Filters interfaces down to connected ones with a default gateway and an IPv4 address.

    :param interfaces: Interfaces as enumerated by the environment
    :type interfaces: List[InterfaceConfig]
    :return: Qualifying interfaces ordered by ascending interface index
    :rtype: List[InterfaceConfig]
    """
    candidates = [
        iface for iface in interfaces
        if iface.gateway
        and iface.ipv4
        and iface.status.strip().lower() != DISCONNECTED_STATUS
    ]
    return sorted(candidates, key=lambda iface: iface.index)


def select_primary_interface(interfaces: List[InterfaceConfig]) -> Optional[InterfaceConfig]:
    """
    Picks the primary usable interface from an enumeration.

    When several interfaces qualify, the one with the lowest interface index wins.

    :param interfaces: Interfaces as enumerated by the environment
    :type interfaces: List[InterfaceConfig]
    :return: The selected interface, or None if no interface qualifies
    :rtype: Optional[InterfaceConfig]
    """
    candidates = qualifying_interfaces(interfaces)
    if not candidates:
        logger.warning("No connected network interface with a default gateway was found.")
        return None

    selected = candidates[0]
    if len(candidates) > 1:
        logger.info(f"{len(candidates)} interfaces qualify; using '{selected.alias}' (index {selected.index}).")
    logger.debug(f"Resolved local IPv4 address {selected.ipv4} on interface '{selected.alias}'.")
    return selected


def resolve_local_ipv4(environment: Environment) -> Optional[str]:
    """
    Returns the IPv4 address of the primary usable network interface.

    :param environment: Host environment provider
    :type environment: Environment
    :return: The IPv4 address, or None if no interface qualifies
    :rtype: Optional[str]
    """
    selected = select_primary_interface(environment.list_interfaces())
    return selected.ipv4 if selected else None
