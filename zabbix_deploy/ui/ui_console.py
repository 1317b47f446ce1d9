"""
Console user interface utilities for the Zabbix deployment tool.
Handles terminal output and the interactive password prompt.
"""
import sys
import getpass
from typing import Optional


COLORS = {
    'RESET': '\033[0m',
    'RED': '\033[91m',
    'GREEN': '\033[92m',
    'YELLOW': '\033[93m',
    'BLUE': '\033[94m',
    'BOLD': '\033[1m'
}


def _supports_color() -> bool:
    """
    Determine if the current terminal supports color output.
    Windows 10 build 14931 and later understand ANSI sequences.

    :return: True if color is supported, False otherwise
    :rtype: bool
    """
    if not sys.stdout.isatty():
        return False
    try:
        import winreg
        with winreg.OpenKey(winreg.HKEY_LOCAL_MACHINE,
                            r'SOFTWARE\\Microsoft\\Windows NT\\CurrentVersion') as key:
            build = int(winreg.QueryValueEx(key, 'CurrentBuildNumber')[0])
            return build >= 14931
    except (ImportError, OSError):
        return False


def colored_text(text: str, color: str) -> str:
    """
    Wraps text with ANSI color codes if supported.

    :param text: Text to colorize
    :type text: str
    :param color: Color name from COLORS dict
    :type color: str
    :return: Colorized text if supported, original text otherwise
    :rtype: str
    """
    if color not in COLORS or not _supports_color():
        return text

    return COLORS[color] + text + COLORS['RESET']


def display_error(message: str, error_type: str = "ERROR") -> None:
    error_prefix = colored_text(f"[{error_type}]", "RED")
    print(f"{error_prefix} {message}", file=sys.stderr)


def display_info(message: str, info_type: str = "INFO") -> None:
    info_prefix = colored_text(f"[{info_type}]", "BLUE")
    print(f"{info_prefix} {message}")


def display_success(message: str) -> None:
    success_prefix = colored_text("[SUCCESS]", "GREEN")
    print(f"{success_prefix} {message}")


def prompt_for_password(username: str) -> Optional[str]:
    """
    Prompts for the API password without echoing it.

    :param username: The user the password belongs to
    :type username: str
    :return: The password, or None if canceled or empty
    :rtype: Optional[str]
    """
    try:
        password = getpass.getpass(f"Password for '{username}': ")
    except (KeyboardInterrupt, EOFError):
        print("\nCanceled by user.")
        return None

    if not password:
        display_error("Password cannot be empty.")
        return None
    return password
