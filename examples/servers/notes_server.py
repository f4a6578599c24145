"""
Small notes server for trying out mcp-chat.

Exposes a ``search`` tool, like docs_server.py, so that both servers show up
under their own qualified names.
"""

import sys

from mcp.server.fastmcp import FastMCP

app = FastMCP("notes-server")

NOTES = {
    "groceries": "Eggs, milk, coffee beans.",
    "standup": "Demo the multi-server routing on Thursday.",
}


@app.tool()
async def search(query: str) -> str:
    """
    Search the notes.

    Args:
        query: Word to look for.
    """
    print(f"Received notes search: {query}", file=sys.stderr)
    hits = [f"{title}: {body}" for title, body in NOTES.items() if query.lower() in (title + body).lower()]
    return "\n".join(hits) or f"No notes match '{query}'"


@app.tool()
async def add_note(title: str, body: str) -> str:
    """Store a note under a title."""
    NOTES[title] = body
    return f"Saved note '{title}'"


if __name__ == "__main__":
    app.run()
