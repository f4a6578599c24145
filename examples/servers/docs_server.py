"""
Small documentation server for trying out mcp-chat.
"""

import sys

from mcp.server.fastmcp import FastMCP

app = FastMCP("docs-server")

DOCS = {
    "mcp": "MCP (Model Context Protocol) lets a model call tools hosted by separate servers.",
    "python": "Python is a programming language created by Guido van Rossum in 1991.",
}


@app.tool()
async def search(query: str) -> str:
    """
    Search the documentation.

    Args:
        query: Topic to look up.
    """
    print(f"Received docs search: {query}", file=sys.stderr)
    return DOCS.get(query.lower(), f"No documentation for {query}")


if __name__ == "__main__":
    app.run()
