"""Node commands: resolve, provision, show."""

import logging
import sys

import httpx
import yaml

from armnode.config import load_config, node_properties, parse_overrides
from armnode.errors import ArmNodeError
from armnode.provisioning.azure import AzureArmClient
from armnode.provisioning.node import provision_node, resolve_request
from armnode.provisioning.types import NodeSpec
from armnode.redact import register_secret

logger = logging.getLogger(__name__)


def _load_node(args):
    """Load config and return (NodeSpec, ProviderConfig) for args.node."""
    config = load_config(args.config)
    provider = config.provider_for(args.node)
    properties = node_properties(config, args.node, parse_overrides(args.set))
    spec = NodeSpec.from_properties(args.node, properties, provider_name=provider.name)
    register_secret(spec.ssh_password)
    return spec, provider


def _dump(data):
    for line in yaml.safe_dump(data, sort_keys=False).rstrip().splitlines():
        logger.info(line)


def _run(func, args):
    try:
        func(args)
    except (ArmNodeError, FileNotFoundError, httpx.HTTPError) as e:
        logger.error(f"Error: {e}")
        sys.exit(1)


# ── CLI handlers ───────────────────────────────────────────────────


def handle_resolve(args):
    """CLI handler for 'node resolve'."""
    _run(_handle_resolve, args)


def _handle_resolve(args):
    spec, provider = _load_node(args)
    with AzureArmClient(provider) as client:
        request = resolve_request(spec, client)
    _dump({"request": request.to_dict()})


def handle_provision(args):
    """CLI handler for 'node provision'."""
    _run(_handle_provision, args)


def _handle_provision(args):
    spec, provider = _load_node(args)
    with AzureArmClient(provider, dry_run=args.dry_run) as client:
        node = provision_node(spec, client, dry_run=args.dry_run)
    _dump({"node": node.initial_metadata.to_dict()})


def handle_show(args):
    """CLI handler for 'node show'."""
    _run(_handle_show, args)


def _handle_show(args):
    config = load_config(args.config)
    provider = config.provider_for(args.node)
    with AzureArmClient(provider) as client:
        metadata = client.get_node_metadata(args.id)
    _dump({"node": metadata.to_dict()})


# ── Registration ───────────────────────────────────────────────────


def _add_node_args(parser):
    parser.add_argument("config", help="Path to the YAML config file")
    parser.add_argument("node", help="Node name in the config file")


def _add_override_arg(parser):
    parser.add_argument(
        "--set",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Override a node property (repeatable)",
    )


def register_node_command(subparsers):
    """Register the 'node' command with resolve/provision/show actions."""
    node_parser = subparsers.add_parser("node", help="Resolve and provision Azure ARM nodes")
    action_subparsers = node_parser.add_subparsers(dest="action", required=True)

    parser = action_subparsers.add_parser("resolve", help="Resolve image and size, print the provisioning request")
    _add_node_args(parser)
    _add_override_arg(parser)
    parser.set_defaults(func=handle_resolve)

    parser = action_subparsers.add_parser("provision", help="Provision a node")
    _add_node_args(parser)
    _add_override_arg(parser)
    parser.add_argument("--dry-run", action="store_true", help="Resolve and validate but do not submit")
    parser.set_defaults(func=handle_provision)

    parser = action_subparsers.add_parser("show", help="Show current metadata of a provisioned node")
    _add_node_args(parser)
    parser.add_argument("--id", required=True, help="ARM resource id of the virtual machine")
    parser.set_defaults(func=handle_show)
