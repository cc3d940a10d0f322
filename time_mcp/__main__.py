"""Run the time MCP server: python -m time_mcp."""

from time_mcp.server import main

if __name__ == "__main__":
    main()
