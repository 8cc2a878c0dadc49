"""sysmon CLI: serve host telemetry or query it once.

Usage:
    sysmon serve                          # HTTP on 0.0.0.0:57996
    sysmon serve --transport stdio        # MCP over stdin/stdout
    sysmon call getCPUInfo                # One request, printed as JSON
    sysmon call getProcessByPID --params '{"pid": 1}'
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from sysmon.config.settings import Settings, get_settings

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    settings = get_settings()

    parser = argparse.ArgumentParser(
        prog="sysmon",
        description="sysmon: host telemetry over HTTP and MCP",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Verbose output"
    )

    subparsers = parser.add_subparsers(dest="command")

    # serve
    srv = subparsers.add_parser("serve", help="Start the server")
    srv.add_argument("--transport", default="http", choices=["http", "stdio"])
    srv.add_argument("--host", default=settings.HTTP_HOST, help="HTTP bind address")
    srv.add_argument("--port", type=int, default=settings.HTTP_PORT, help="HTTP port")

    # call
    call = subparsers.add_parser("call", help="Dispatch one JSON-RPC request")
    call.add_argument("method", help="Method name, e.g. getSystemInfo")
    call.add_argument("--params", type=json.loads, default={}, help="Params as JSON")

    args = parser.parse_args(argv)

    # Logging goes to stderr; stdout belongs to the protocol in stdio mode
    if args.verbose:
        level = "DEBUG"
    elif args.command == "serve" and args.transport == "stdio":
        level = settings.STDIO_LOG_LEVEL
    else:
        level = settings.LOG_LEVEL
    logging.basicConfig(
        level=level,
        stream=sys.stderr,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        sys.exit(1)

    # Dispatch
    try:
        if args.command == "serve":
            _cmd_serve(args, settings)
        elif args.command == "call":
            ok = asyncio.run(_cmd_call(args, settings))
            if not ok:
                sys.exit(1)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(130)
    except Exception as exc:
        logger.error("Error: %s", exc)
        if args.verbose:
            raise
        sys.exit(1)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def _cmd_serve(args: argparse.Namespace, settings: Settings) -> None:
    """Run one transport until it stops."""
    from sysmon.mcp.server import MCPServer

    server = MCPServer(settings=settings)

    if args.transport == "stdio":
        from sysmon.mcp.stdio import run_stdio
        asyncio.run(run_stdio(server))
    else:
        from sysmon.api.app import create_app, run_http
        app = create_app(server=server, settings=settings)
        asyncio.run(run_http(app, args.host, args.port, log_level=settings.LOG_LEVEL))


async def _cmd_call(args: argparse.Namespace, settings: Settings) -> bool:
    """Print the response to one request.  Returns False on an error response."""
    from sysmon.mcp.protocol import MCPRequest
    from sysmon.mcp.server import MCPServer

    server = MCPServer(settings=settings)
    response = await server.handle_request(
        MCPRequest(method=args.method, params=args.params, id=1)
    )
    print(json.dumps(response.to_dict(), indent=2, default=str))
    return response.ok


if __name__ == "__main__":
    main()
