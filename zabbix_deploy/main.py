"""
Command-line entry point for the Zabbix deployment tool.

Each sub-command maps to one deployment operation; ``deploy`` chains them in
the order an operator would run them by hand.
"""
import argparse
import json
import os
import sys
from dataclasses import asdict
from typing import Any, List, Optional

import requests

from zabbix_deploy.communication import HttpClient, JsonRpcError, JsonRpcProtocolError, get_token, register_host
from zabbix_deploy.config import ConfigManager
from zabbix_deploy.core import AgentInstaller, InstallerError, InstallerRequest
from zabbix_deploy.system import (
    Environment,
    WindowsEnvironment,
    qualifying_interfaces,
    resolve_local_ipv4,
    select_primary_interface
)
from zabbix_deploy.ui import ui_console
from zabbix_deploy.utils import get_logger, setup_logger
from zabbix_deploy.utils.logger import APP_LOGGER_NAME
from zabbix_deploy.version import __app_name__, __version__

PASSWORD_ENV_VAR = "ZABBIX_PASSWORD"
TOKEN_ENV_VAR = "ZABBIX_TOKEN"

logger = get_logger(__name__)


def _pick(value: Any, config: ConfigManager, key_path: str, default: Any = None) -> Any:
    """Returns the command-line value if given, else the configured one."""
    if value is not None:
        return value
    return config.get(key_path, default)


def _require(value: Any, option: str) -> Any:
    if value is None or value == "":
        raise ValueError(f"Missing required option {option} (not set on the command line or in the config file).")
    return value


def _resolve_password(args: argparse.Namespace, username: str) -> str:
    password = args.password or os.environ.get(PASSWORD_ENV_VAR)
    if not password:
        password = ui_console.prompt_for_password(username)
    if not password:
        raise ValueError(f"A password is required (use --password, {PASSWORD_ENV_VAR} or the prompt).")
    return password


def _install_agent(args: argparse.Namespace, config: ConfigManager, environment: Environment,
                   http_client: HttpClient) -> None:
    server_list = _pick(args.server_list, config, 'agent.server_allow_list')
    if server_list is None:
        server_list = getattr(args, 'server', None) or config.get('server')
    request = InstallerRequest(
        server_allow_list=_require(server_list, '--server-list'),
        active_server=_pick(args.active_server, config, 'agent.active_server'),
        listen_port=_pick(args.listen_port, config, 'agent.listen_port'),
        source_url=_pick(args.url, config, 'agent.download_url'),
        local_path=_pick(args.local_package, config, 'agent.local_package'),
        hostname=args.agent_hostname,
    )
    result = AgentInstaller(environment, http_client).ensure_installed(request)

    if result.installed:
        ui_console.display_success(f"Agent installed from {result.package_path}.")
    else:
        ui_console.display_info("Agent service already installed.")
    if result.started:
        ui_console.display_info("Agent service started.")
    if not result.listening:
        ui_console.display_info(f"Agent is not accepting connections on port {request.listen_port} yet.", "WARNING")


def _resolve_ip(environment: Environment) -> str:
    ip = resolve_local_ipv4(environment)
    if not ip:
        raise ValueError("Could not determine a local IPv4 address; pass --ip explicitly.")
    return ip


def _register(args: argparse.Namespace, config: ConfigManager, environment: Environment, http_client: HttpClient,
              server: str, token: str, ip: str, port: Any) -> int:
    host_ids = register_host(
        server, token, ip, environment, http_client,
        template_ids=_pick(args.template_ids, config, 'host.template_ids'),
        group_ids=_pick(args.group_ids, config, 'host.group_ids'),
        port=_pick(port, config, 'agent.listen_port'),
        dns=_pick(args.dns, config, 'host.dns', ""),
        hostname=args.hostname,
    )
    if not host_ids:
        ui_console.display_error("The server did not return a host id.")
        return 1
    ui_console.display_success(f"Host registered with id(s): {', '.join(host_ids)}")
    return 0


def _run_install_agent(args: argparse.Namespace, config: ConfigManager, environment: Environment,
                       http_client: HttpClient) -> int:
    _install_agent(args, config, environment, http_client)
    return 0


def _run_local_ip(args: argparse.Namespace, config: ConfigManager, environment: Environment,
                  http_client: HttpClient) -> int:
    interfaces = environment.list_interfaces()
    if args.all:
        for iface in qualifying_interfaces(interfaces):
            ui_console.display_info(str(asdict(iface)), "INTERFACE")

    selected = select_primary_interface(interfaces)
    if not selected:
        ui_console.display_error("No connected network interface with a default gateway was found.")
        return 1
    print(selected.ipv4)
    return 0


def _run_get_token(args: argparse.Namespace, config: ConfigManager, environment: Environment,
                   http_client: HttpClient) -> int:
    server = _require(_pick(args.server, config, 'server'), '--server')
    username = _pick(args.username, config, 'username')
    token = get_token(server, username, _resolve_password(args, username), http_client)
    print(token)
    return 0


def _run_register_host(args: argparse.Namespace, config: ConfigManager, environment: Environment,
                       http_client: HttpClient) -> int:
    server = _require(_pick(args.server, config, 'server'), '--server')
    token = _require(args.token or os.environ.get(TOKEN_ENV_VAR), '--token')
    ip = args.ip or _resolve_ip(environment)
    return _register(args, config, environment, http_client, server, token, ip, args.port)


def _run_deploy(args: argparse.Namespace, config: ConfigManager, environment: Environment,
                http_client: HttpClient) -> int:
    server = _require(_pick(args.server, config, 'server'), '--server')
    _install_agent(args, config, environment, http_client)

    ip = args.ip or _resolve_ip(environment)
    ui_console.display_info(f"Using local address {ip}.")

    username = _pick(args.username, config, 'username')
    token = get_token(server, username, _resolve_password(args, username), http_client)

    return _register(args, config, environment, http_client, server, token, ip, args.listen_port)


def _add_install_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('--server-list', help='Comma-separated IPs/host names allowed to query the agent (SERVER).')
    parser.add_argument('--active-server', help='Server endpoint for active checks (SERVERACTIVE, optional).')
    parser.add_argument('--listen-port', type=int, help='Agent listen port (default: 10050).')
    parser.add_argument('--url', help='Download URL of the agent MSI package.')
    parser.add_argument('--local-package', help='Path to an already downloaded agent MSI package.')
    parser.add_argument('--agent-hostname', help='Host name written to the agent configuration (HOSTNAME, optional).')


def _add_server_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('--server', help='Monitoring server host name or address.')


def _add_login_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('--username', help='API user name (default: Admin).')
    parser.add_argument('--password', help=f'API password (default: ${PASSWORD_ENV_VAR} or prompt).')


def _add_host_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('--ip', help='IP address to register (default: resolved local address).')
    parser.add_argument('--template-ids', help='Comma-separated template ids (default: 10081).')
    parser.add_argument('--group-ids', help='Comma-separated host group ids (default: 10).')
    parser.add_argument('--dns', help='DNS name of the agent interface (optional).')
    parser.add_argument('--hostname', help='Host name to register (default: local machine name).')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='zabbix-deploy', description=f"{__app_name__} CLI.")
    parser.add_argument('--version', action='version', version=f"%(prog)s {__version__}")
    parser.add_argument('--config', help='Path to a JSON configuration file.')
    parser.add_argument('--log-file', help='Write a debug log to this file.')
    parser.add_argument('-v', '--verbose', action='store_true', help='Log debug output to the console.')
    subparsers = parser.add_subparsers(dest='command', help='Available commands')
    subparsers.required = True

    install_parser = subparsers.add_parser('install-agent', help='Download and install the agent service if missing.')
    _add_install_arguments(install_parser)
    install_parser.set_defaults(func=_run_install_agent)

    ip_parser = subparsers.add_parser('local-ip', help='Print the IPv4 address of the primary interface.')
    ip_parser.add_argument('--all', action='store_true', help='Also list every qualifying interface.')
    ip_parser.set_defaults(func=_run_local_ip)

    token_parser = subparsers.add_parser('get-token', help='Log in to the API and print the session token.')
    _add_server_arguments(token_parser)
    _add_login_arguments(token_parser)
    token_parser.set_defaults(func=_run_get_token)

    register_parser = subparsers.add_parser('register-host', help='Register this machine as a monitored host.')
    _add_server_arguments(register_parser)
    register_parser.add_argument('--token', help=f'Session token (default: ${TOKEN_ENV_VAR}).')
    _add_host_arguments(register_parser)
    register_parser.add_argument('--port', help='Agent port of the host interface (default: 10050).')
    register_parser.set_defaults(func=_run_register_host)

    deploy_parser = subparsers.add_parser('deploy', help='Install the agent, log in and register this machine.')
    _add_server_arguments(deploy_parser)
    _add_install_arguments(deploy_parser)
    _add_login_arguments(deploy_parser)
    _add_host_arguments(deploy_parser)
    deploy_parser.set_defaults(func=_run_deploy)

    return parser


def main(argv: Optional[List[str]] = None, environment: Optional[Environment] = None,
         session: Optional[requests.Session] = None) -> int:
    """
    Parses arguments and dispatches the selected command.

    :return: Process exit status
    :rtype: int
    """
    args = build_parser().parse_args(argv)

    try:
        config = ConfigManager(args.config)
    except (FileNotFoundError, ValueError) as e:
        ui_console.display_error(str(e))
        return 1

    console_level = 'DEBUG' if args.verbose else config.get('logging.console_level', 'INFO')
    setup_logger(
        APP_LOGGER_NAME,
        console_level_name=console_level,
        file_level_name=config.get('logging.file_level', 'DEBUG'),
        log_file_path=args.log_file or config.get('logging.file_path'),
    )
    logger.debug(f"Effective configuration: {json.dumps(config.all_config, sort_keys=True)}")

    environment = environment or WindowsEnvironment()
    http_client = HttpClient(config, session=session)
    try:
        return args.func(args, config, environment, http_client)
    except JsonRpcError as e:
        ui_console.display_error(f"Server rejected the request: {e}")
    except (JsonRpcProtocolError, InstallerError, FileNotFoundError, ValueError) as e:
        ui_console.display_error(str(e))
    except requests.RequestException as e:
        ui_console.display_error(f"Network error: {e}")
    except Exception as e:
        logger.critical(f"Unexpected error running '{args.command}': {e}", exc_info=True)
        ui_console.display_error(f"Unexpected error: {e}", "FATAL")
    finally:
        http_client.close()
    return 1


def cli() -> None:
    sys.exit(main())


if __name__ == '__main__':
    cli()
