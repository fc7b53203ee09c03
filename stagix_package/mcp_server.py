#!/usr/bin/env python3
"""
MCP server for stagix - builds static repository sites from an MCP client.

Local repositories and output directories only; tool calls never fetch anything.
"""

import asyncio
import logging
import pathlib
from typing import Any, Dict, List

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from .index import IndexOptions, build_index_page
from .pages import PagesOptions, build_pages_dirs
from .site import RepoOptions, build_repo_pages

logger = logging.getLogger(__name__)

server = Server("stagix-mcp")

TOOLS = [
    Tool(
        name="build_repo_site",
        description="Render one local git repository as a static HTML site (log, commits, files, refs)",
        inputSchema={
            "type": "object",
            "properties": {
                "repo_path": {"type": "string", "description": "Path to the git repository"},
                "out_dir": {"type": "string", "description": "Directory to write the site into"},
                "log_length": {"type": "integer", "description": "Limit history to this many commits"},
            },
            "required": ["repo_path", "out_dir"],
        },
    ),
    Tool(
        name="build_index",
        description="Write the shared index.html listing several repositories",
        inputSchema={
            "type": "object",
            "properties": {
                "repo_paths": {"type": "array", "items": {"type": "string"}},
                "out_dir": {"type": "string", "description": "Directory for index.html"},
            },
            "required": ["repo_paths", "out_dir"],
        },
    ),
    Tool(
        name="publish_pages",
        description="Publish each repository's pages directory into out_dir/<name> with an atomic swap",
        inputSchema={
            "type": "object",
            "properties": {
                "repo_paths": {"type": "array", "items": {"type": "string"}},
                "out_dir": {"type": "string"},
                "working_dir": {"type": "string", "description": "Scratch directory on the same filesystem"},
            },
            "required": ["repo_paths", "out_dir", "working_dir"],
        },
    ),
]


def _require(arguments: Dict[str, Any], *names: str) -> None:
    missing = [n for n in names if n not in arguments]
    if missing:
        raise ValueError(f"Missing required argument: {', '.join(missing)}")


@server.list_tools()
async def list_tools() -> List[Tool]:
    """List available tools."""
    return TOOLS


@server.call_tool()
async def call_tool(name: str, arguments: Dict[str, Any]) -> List[TextContent]:
    """Run a build; failures propagate and are reported to the client as tool errors."""
    if name == "build_repo_site":
        _require(arguments, "repo_path", "out_dir")
        logger.info("Building site for %s", arguments["repo_path"])
        out = build_repo_pages(
            arguments["repo_path"],
            RepoOptions(out_dir=pathlib.Path(arguments["out_dir"]), log_length=arguments.get("log_length")),
        )
        return [TextContent(type="text", text=f"Site for {arguments['repo_path']} written to {out}")]

    if name == "build_index":
        _require(arguments, "repo_paths", "out_dir")
        out_dir = pathlib.Path(arguments["out_dir"])
        build_index_page(arguments["repo_paths"], IndexOptions(out_dir=out_dir))
        return [TextContent(type="text", text=f"Index of {len(arguments['repo_paths'])} repositories written to {out_dir / 'index.html'}")]

    if name == "publish_pages":
        _require(arguments, "repo_paths", "out_dir", "working_dir")
        published = build_pages_dirs(
            arguments["repo_paths"],
            PagesOptions(out_dir=pathlib.Path(arguments["out_dir"]), working_dir=pathlib.Path(arguments["working_dir"])),
        )
        lines = [f"Published {len(published)} of {len(arguments['repo_paths'])} repositories"]
        lines += [str(p) for p in published]
        return [TextContent(type="text", text="\n".join(lines))]

    raise ValueError(f"Unknown tool: {name}")


async def serve() -> None:
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())


def main() -> None:
    """Entry point for the stagix-mcp console script."""
    logging.basicConfig(level=logging.INFO)
    asyncio.run(serve())


if __name__ == "__main__":
    main()
