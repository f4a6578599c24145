"""
Programmatic use of mcp-chat without the CLI.

Connects to the example servers, asks one question and prints the answer.
"""

import asyncio
import os

from mcp_chat import ChatApp, load_config

HERE = os.path.dirname(os.path.abspath(__file__))


async def main():
    os.chdir(HERE)
    settings = load_config(os.path.join(HERE, "mcp_chat.config.yaml"))

    def show_tool_call(name, arguments):
        print(f"[Calling tool {name} with args {arguments}]")

    app = ChatApp(name="chat_example", settings=settings, on_tool_call=show_tool_call)
    async with app.run() as running:
        print("Available tools:")
        for tool in running.sessions.registry.catalog():
            print(f"- {tool.name}: {tool.description}")

        answer = await running.agent.run("Search my notes and the docs for 'mcp'.")
        print(f"\nClaude: {answer}")


if __name__ == "__main__":
    asyncio.run(main())
