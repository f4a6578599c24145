from mcp_chat.cli import cli

cli()
