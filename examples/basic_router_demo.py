#!/usr/bin/env python3
"""
Basic Cluster Router Demo

Runs a short scripted session against an already running three node
cluster, showing:
- Leader discovery through "TRY <port>" redirects
- Sticky routing on subsequent commands
- Pipelined commands on the leader
- Expectation checks with approximate float matching

Usage:
  python3 examples/basic_router_demo.py 7481,7482,7483
"""

import sys
import os
import logging

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from raftroute import ClusterRouter, Pause, approx, normalize


def setup_logging():
    """Configure logging for the demo"""
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )
    logging.getLogger('raftroute.cluster').setLevel(logging.DEBUG)


def print_section(title):
    """Print a section header"""
    print(f"\n{'='*60}")
    print(f" {title}")
    print(f"{'='*60}")


def demonstrate_routing(router):
    print_section("Leader Discovery")

    reply = router.do("SET", "user:alice", "Alice Johnson")
    print(f"SET user:alice -> {normalize(reply)} (served by port {router.current.port})")
    print(f"Redirects followed so far: {router.redirects_followed}")

    reply = router.do("GET", "user:alice")
    print(f"GET user:alice -> {normalize(reply)} (served by port {router.current.port})")
    print(f"Redirects followed so far: {router.redirects_followed}")


def demonstrate_pipelining(router):
    print_section("Pipelined Commands on the Leader")

    results = router.current.do_pipeline([
        ("SET", "config:timeout", "30"),
        ("SET", "config:ratio"),
        ("GET", "config:timeout"),
    ])
    for i, result in enumerate(results, 1):
        print(f"  slot {i}: {normalize(result) if not isinstance(result, Exception) else result}")


def demonstrate_batch(router):
    print_section("Scripted Batch")

    router.do_batch([
        (("SET", "pi", "3.14159"), "OK"),
        Pause(0.2),
        (("GET", "pi"), approx(3.14, 2)),
        (("DEL", "pi"), 1),
        (("GET", "pi"), None),
    ])
    print("Batch passed")


def main():
    setup_logging()
    if len(sys.argv) != 2:
        print(__doc__)
        sys.exit(1)

    ports = [int(port) for port in sys.argv[1].split(",")]
    with ClusterRouter.from_ports(ports) as router:
        demonstrate_routing(router)
        demonstrate_pipelining(router)
        demonstrate_batch(router)


if __name__ == '__main__':
    main()
