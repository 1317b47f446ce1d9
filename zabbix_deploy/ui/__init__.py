"""
Console user interface for the Zabbix deployment tool.
"""
from . import ui_console

__all__ = ['ui_console']
