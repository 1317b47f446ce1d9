from zabbix_deploy.main import cli

cli()
