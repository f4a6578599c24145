"""
Utility helpers for mcp-chat.
"""
