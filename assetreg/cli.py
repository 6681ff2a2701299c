#!/usr/bin/env python3
"""
Asset registry CLI

Command-line interface over a registry persisted in a data directory:
  assetreg register - Register an asset by hash or file
  assetreg verify - Show owner, timestamp and metadata of an asset
  assetreg transfer - Transfer an asset to a new owner
  assetreg update-metadata - Replace an asset's metadata
  assetreg assets-by-owner - List assets granted to a principal
  assetreg count - Number of assets ever registered
  assetreg history - Events recorded for an asset
  assetreg events - Dump the event log
  assetreg keygen - Create the registry signing key

Usage:
  assetreg register <hash> --as <principal> [--metadata <text>]
  assetreg register --file <path> --as <principal> [--metadata <text>]
  assetreg transfer <hash> <new-owner> --as <principal>
  assetreg events [--since N] [--verify]
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from .clock import LogicalClock
from .config import RegistryConfig
from .errors import RegistryError
from .hashing import hash_file
from .service import RegistryService
from .signing import RegistryKey


def load_config(args) -> RegistryConfig:
    """Config file (if any) with command-line overrides applied."""
    config = RegistryConfig.from_file(args.config) if args.config else RegistryConfig()
    return config.with_overrides(
        data_dir=args.data_dir,
        log_level="DEBUG" if args.verbose else None,
    )


def open_registry(config: RegistryConfig) -> RegistryService:
    """Open the registry, loading the signing key when signing is enabled."""
    key = None
    if config.sign_events:
        if not config.key_path.exists():
            raise RegistryError(
                f"Signing is enabled but no key at {config.key_path} (run 'assetreg keygen')"
            )
        key = RegistryKey.load(config.key_path)
    return RegistryService.open(config.data_dir, key=key)


def _print_json(data):
    print(json.dumps(data, indent=2))


def cmd_register(args, config: RegistryConfig):
    """Register an asset."""
    if args.file:
        path = Path(args.file)
        if not path.exists():
            raise RegistryError(f"Asset file not found: {path}")
        asset_id = hash_file(path, config.hash_algorithm)
    elif args.asset_id:
        asset_id = args.asset_id
    else:
        raise RegistryError("Give an asset hash or --file")

    registry = open_registry(config)
    if args.at is not None:
        now = args.at
    else:
        now = LogicalClock.wall(floor=registry.assets.latest_registered_at()).now()

    asset = registry.register(args.caller, asset_id, args.metadata, now)
    _print_json(asset.to_dict())


def cmd_verify(args, config: RegistryConfig):
    """Look up an asset."""
    result = open_registry(config).verify(args.asset_id)
    _print_json(result._asdict())


def cmd_transfer(args, config: RegistryConfig):
    """Transfer an asset."""
    registry = open_registry(config)
    registry.transfer(args.caller, args.asset_id, args.new_owner)
    print(f"Transferred to {args.new_owner}")


def cmd_update_metadata(args, config: RegistryConfig):
    """Replace an asset's metadata."""
    registry = open_registry(config)
    registry.update_metadata(args.caller, args.asset_id, args.metadata)
    print("Metadata updated")


def cmd_assets_by_owner(args, config: RegistryConfig):
    """List assets granted to a principal."""
    registry = open_registry(config)
    if args.current:
        asset_ids = registry.current_assets_of(args.principal)
    else:
        asset_ids = registry.assets_by_owner(args.principal)
    for asset_id in asset_ids:
        print(asset_id)


def cmd_count(args, config: RegistryConfig):
    """Print the number of assets ever registered."""
    print(open_registry(config).total_count())


def cmd_history(args, config: RegistryConfig):
    """Print the events recorded for an asset."""
    registry = open_registry(config)
    _print_json([e.payload() for e in registry.history(args.asset_id)])


def cmd_events(args, config: RegistryConfig):
    """Dump the event log."""
    registry = open_registry(config)
    events = registry.events.since(args.since)
    _print_json([{"sequence": e.sequence, **e.payload()} for e in events])

    if args.verify:
        if not config.key_path.exists():
            raise RegistryError(f"No registry key at {config.key_path}")
        key = RegistryKey.load(config.key_path)
        if not registry.events.verify_all(key.public_key):
            raise RegistryError("Event log signature check FAILED")
        print(f"All {len(registry.events)} event signatures valid", file=sys.stderr)


def cmd_keygen(args, config: RegistryConfig):
    """Create the registry signing key."""
    key_path = config.key_path
    if key_path.exists():
        raise RegistryError(f"Key already exists: {key_path} (delete it first to regenerate)")
    key = RegistryKey.generate()
    key.save(key_path)
    print(f"Private key saved: {key_path}")
    print(f"Public key saved: {key_path.with_suffix('.pub')}")
    print(f"Key ID: {key.key_id}")


COMMANDS = {
    "register": cmd_register,
    "verify": cmd_verify,
    "transfer": cmd_transfer,
    "update-metadata": cmd_update_metadata,
    "assets-by-owner": cmd_assets_by_owner,
    "count": cmd_count,
    "history": cmd_history,
    "events": cmd_events,
    "keygen": cmd_keygen,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="assetreg",
        description="Asset registry - content hash ownership and audit trail",
    )
    parser.add_argument("--config", help="Config YAML file")
    parser.add_argument("--data-dir", help="Registry data directory")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # register command
    register_parser = subparsers.add_parser("register", help="Register an asset")
    register_parser.add_argument("asset_id", nargs="?", help="Asset hash (64 hex characters)")
    register_parser.add_argument("--file", help="Compute the asset hash from this file")
    register_parser.add_argument("--as", dest="caller", required=True, help="Caller principal")
    register_parser.add_argument("--metadata", default="", help="Metadata string")
    register_parser.add_argument("--at", type=int, help="Logical timestamp (default: now)")

    # verify command
    verify_parser = subparsers.add_parser("verify", help="Look up an asset")
    verify_parser.add_argument("asset_id", help="Asset hash")

    # transfer command
    transfer_parser = subparsers.add_parser("transfer", help="Transfer an asset")
    transfer_parser.add_argument("asset_id", help="Asset hash")
    transfer_parser.add_argument("new_owner", help="New owner principal")
    transfer_parser.add_argument("--as", dest="caller", required=True, help="Caller principal")

    # update-metadata command
    metadata_parser = subparsers.add_parser("update-metadata", help="Replace asset metadata")
    metadata_parser.add_argument("asset_id", help="Asset hash")
    metadata_parser.add_argument("metadata", help="New metadata string")
    metadata_parser.add_argument("--as", dest="caller", required=True, help="Caller principal")

    # assets-by-owner command
    owner_parser = subparsers.add_parser("assets-by-owner", help="List assets granted to a principal")
    owner_parser.add_argument("principal", help="Principal")
    owner_parser.add_argument("--current", action="store_true",
                              help="Only assets the principal owns now")

    subparsers.add_parser("count", help="Number of assets ever registered")

    # history command
    history_parser = subparsers.add_parser("history", help="Events recorded for an asset")
    history_parser.add_argument("asset_id", help="Asset hash")

    # events command
    events_parser = subparsers.add_parser("events", help="Dump the event log")
    events_parser.add_argument("--since", type=int, default=0,
                               help="Only events after this sequence number")
    events_parser.add_argument("--verify", action="store_true",
                               help="Check event signatures against the registry key")

    subparsers.add_parser("keygen", help="Create the registry signing key")

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    command = COMMANDS.get(args.command)
    if command is None:
        parser.print_help()
        sys.exit(1)

    try:
        config = load_config(args)
        logging.basicConfig(
            level=config.log_level_value,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        )
        command(args, config)
    except RegistryError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
