import argparse
import asyncio
import json
import sys

from .client import X402Client
from .config import ClientConfig, ServerConfig
from .constants import DEFAULT_NETWORK, LOG_FILE, LOG_LEVEL, RPC_URL_OVERRIDE
from .core import hook_codec
from .errors import X402Error
from .logging_config import configure_logging
from .server import X402Server


def serve(args) -> int:
    config = ServerConfig(
        name=args.name,
        url=args.url or f"http://localhost:{args.port}",
        network=args.network,
        description=args.description,
        rpc_url=args.rpc_url,
    )
    server = X402Server(config)
    if args.services:
        asyncio.run(server.add_services_from_file(args.services))
    server.run(host=args.host, port=args.port)
    return 0


def discover(args) -> int:
    client = X402Client(ClientConfig(network=args.network, rpc_url=args.rpc_url))
    results = asyncio.run(client.discover_all(args.urls))
    print(json.dumps([r.to_dict() for r in results], indent=2))
    return 1 if any(r.error for r in results) else 0


def schema(args) -> int:
    print(json.dumps(hook_codec.get_schema(args.kind).to_dict(), indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="x402 hook services")
    parser.add_argument("--network", type=str, default=DEFAULT_NETWORK, help="cronos or cronos-testnet")
    parser.add_argument("--rpc-url", type=str, default=RPC_URL_OVERRIDE, help="Custom RPC URL")
    parser.add_argument("--log-level", type=str, default=LOG_LEVEL)
    sub = parser.add_subparsers(dest="command", required=True)

    p_serve = sub.add_parser("serve", help="Register services and serve discovery endpoints")
    p_serve.add_argument("--services", type=str, help="JSON file with service configs")
    p_serve.add_argument("--name", type=str, default="x402-hook-server")
    p_serve.add_argument("--description", type=str, default=None)
    p_serve.add_argument("--url", type=str, default=None, help="Public base URL for the agent card")
    p_serve.add_argument("--host", type=str, default="0.0.0.0")
    p_serve.add_argument("--port", type=int, default=8000)
    p_serve.set_defaults(func=serve)

    p_discover = sub.add_parser("discover", help="Fetch agent cards from servers")
    p_discover.add_argument("urls", nargs="+")
    p_discover.set_defaults(func=discover)

    p_schema = sub.add_parser("schema", help="Show the hookData schema of a hook type")
    p_schema.add_argument("kind", choices=[k.value for k in hook_codec.HookKind])
    p_schema.set_defaults(func=schema)
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level, LOG_FILE)
    try:
        return args.func(args)
    except X402Error as e:
        print(json.dumps(e.to_dict(), indent=2), file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
