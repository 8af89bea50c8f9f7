#!/usr/bin/env python3
"""Azure ARM node provisioning tools: CLI entrypoint."""

import argparse

from armnode.commands.node import register_node_command
from armnode.logging_setup import setup_cli_logging


def main():
    parser = argparse.ArgumentParser(description="Azure ARM node provisioning tools")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug output, including resolution trace events")
    subparsers = parser.add_subparsers(dest="command", required=True)

    register_node_command(subparsers)

    args = parser.parse_args()
    setup_cli_logging(verbose=args.verbose)
    args.func(args)


if __name__ == "__main__":
    main()
