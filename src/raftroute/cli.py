"""
Command Line Interface

  raftroute do --ports 7481,7482,7483 SET key value
  raftroute cleanup --root /tmp/run
"""

import sys
import argparse

import redis

from .bootstrap import cleanup
from .cluster import ClusterRouter
from .config import HarnessConfig, configure_logging
from .matching import canonical, normalize


def port_list(value: str):
    try:
        return [int(part) for part in value.split(",") if part]
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid port list: {value}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="raftroute",
        description="Leader-redirect aware client for Raft key/value clusters",
    )
    subparsers = parser.add_subparsers(dest="action", required=True)

    do_parser = subparsers.add_parser("do", help="Route one command through the cluster")
    do_parser.add_argument("--ports", type=port_list, required=True,
                           help="Comma separated client ports of the cluster members")
    do_parser.add_argument("--host", default=None, help="Host the members listen on")
    do_parser.add_argument("command", nargs="+", help="Command name and arguments")

    cleanup_parser = subparsers.add_parser("cleanup", help="Remove test data directories")
    cleanup_parser.add_argument("--root", default=None, help="Directory to sweep")

    return parser


def run_command(args, config: HarnessConfig, out=sys.stdout) -> int:
    if args.host:
        config.host = args.host

    with ClusterRouter.from_ports(args.ports, config) as router:
        try:
            reply = router.do(args.command[0], *args.command[1:])
        except redis.RedisError as e:
            print(f"(transport error) {e}", file=out)
            return 1

        if reply.is_error:
            print(f"(error) {reply.value}", file=out)
            return 1
        print(canonical(normalize(reply)), file=out)
        print(f"(served by port {router.current.port})", file=out)
    return 0


def main(argv=None, out=sys.stdout) -> int:
    args = build_parser().parse_args(argv)
    config = HarnessConfig.from_env()
    configure_logging(config)

    if args.action == "do":
        return run_command(args, config, out)

    for name in cleanup(args.root, config):
        print(f"removed {name}", file=out)
    return 0


if __name__ == "__main__":
    sys.exit(main())
