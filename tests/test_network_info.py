"""
Tests for local address resolution and interface parsing.
"""
import json

import pytest

from zabbix_deploy.system import InterfaceConfig, parse_ip_configuration, qualifying_interfaces, resolve_local_ipv4


def _iface(index, ipv4, gateway, status="Up", alias=None):
    return InterfaceConfig(index=index, alias=alias or f"Ethernet {index}", ipv4=ipv4, gateway=gateway, status=status)


def test_single_qualifying_interface_is_returned(fake_env):
    fake_env.interfaces = [
        _iface(1, "127.0.0.1", None, alias="Loopback"),
        _iface(12, "192.168.10.25", "192.168.10.1"),
        _iface(7, "10.8.0.4", None),
    ]

    assert resolve_local_ipv4(fake_env) == "192.168.10.25"


def test_no_qualifying_interface_returns_none(fake_env):
    fake_env.interfaces = [
        _iface(1, "127.0.0.1", None),
        _iface(12, "192.168.10.25", "192.168.10.1", status="Disconnected"),
    ]

    assert resolve_local_ipv4(fake_env) is None


def test_empty_interface_list_returns_none(fake_env):
    assert resolve_local_ipv4(fake_env) is None


def test_lowest_interface_index_wins(fake_env):
    fake_env.interfaces = [
        _iface(18, "172.16.0.9", "172.16.0.1"),
        _iface(4, "192.168.1.50", "192.168.1.1"),
        _iface(11, "10.0.0.20", "10.0.0.1"),
    ]

    assert resolve_local_ipv4(fake_env) == "192.168.1.50"


def test_disconnected_status_is_case_insensitive():
    interfaces = [_iface(3, "10.0.0.20", "10.0.0.1", status="disconnected")]

    assert qualifying_interfaces(interfaces) == []


def test_interface_without_ipv4_is_skipped():
    interfaces = [_iface(3, None, "10.0.0.1"), _iface(9, "10.0.0.30", "10.0.0.1")]

    assert [iface.index for iface in qualifying_interfaces(interfaces)] == [9]


def test_parse_single_object_output():
    output = json.dumps({
        "InterfaceIndex": 12,
        "InterfaceAlias": "Ethernet",
        "IPv4Address": "192.168.10.25",
        "IPv4DefaultGateway": "192.168.10.1",
        "Status": "Up",
    })

    assert parse_ip_configuration(output) == [_iface(12, "192.168.10.25", "192.168.10.1", alias="Ethernet")]


def test_parse_array_output_with_multiple_addresses():
    output = json.dumps([
        {
            "InterfaceIndex": 5,
            "InterfaceAlias": "Wi-Fi",
            "IPv4Address": ["192.168.0.14", "192.168.0.15"],
            "IPv4DefaultGateway": None,
            "Status": "Disconnected",
        },
        {
            "InterfaceIndex": 8,
            "InterfaceAlias": "vEthernet",
            "IPv4Address": "172.20.0.1",
            "IPv4DefaultGateway": ["", "172.20.0.254"],
            "Status": None,
        },
    ])

    interfaces = parse_ip_configuration(output)

    assert interfaces[0].ipv4 == "192.168.0.14"
    assert interfaces[0].gateway is None
    assert interfaces[1].gateway == "172.20.0.254"
    assert interfaces[1].status == ""


def test_parse_empty_output():
    assert parse_ip_configuration("") == []
    assert parse_ip_configuration("  \r\n") == []


def test_parse_invalid_output_raises():
    with pytest.raises(ValueError):
        parse_ip_configuration("Get-NetIPConfiguration : not recognized")
