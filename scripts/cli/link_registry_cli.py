#!/usr/bin/env python3
"""
Command-line interface for the link registry.

Usage:
    python link_registry_cli.py create <url> [--custom-code CODE] [--validity-minutes N]
    python link_registry_cli.py resolve <short_code>
    python link_registry_cli.py click <short_code> [--source SOURCE]
    python link_registry_cli.py delete <link_id>
    python link_registry_cli.py list
    python link_registry_cli.py health
"""

import argparse
import asyncio
import json
import os
import sys
from typing import Optional

# Add repository root to path when run as a script
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../..')))

from app import build_registry
from config import Config
from linkreg.errors import LinkRegistryError
from linkreg.models import ClickStatus, LinkRecord
from linkreg.registry import LinkRegistry
from linkreg.common.logging_config import setup_logging


class LinkRegistryCLI:
    """Command-line interface for the link registry."""

    def __init__(self, registry: LinkRegistry):
        """Initialize CLI around an unloaded or loaded registry."""
        self.registry = registry

    @classmethod
    def from_config(cls, config: Config, verbose: bool = False) -> "LinkRegistryCLI":
        """Build the CLI with the storage backend named in ``config``."""
        logger = setup_logging(level="DEBUG" if verbose else "WARNING", include_server=False)
        return cls(build_registry(config, logger))

    async def initialize(self):
        """Load the registry snapshot."""
        if not self.registry.loaded:
            await self.registry.load()

    async def cleanup(self):
        """Cleanup resources."""
        await self.registry.close()

    def _record_json(self, record: LinkRecord) -> dict:
        data = record.to_dict()
        data["is_expired"] = self.registry.is_expired(record)
        data["click_count"] = record.click_count
        return data

    @staticmethod
    def _fail(message: str) -> int:
        print(json.dumps({
            "success": False,
            "error": message
        }, indent=2), file=sys.stderr)
        return 1

    async def create(
        self,
        url: str,
        custom_code: Optional[str] = None,
        validity_minutes: Optional[int] = None,
    ) -> int:
        """Create a short link."""
        try:
            record = await self.registry.create(url, custom_code, validity_minutes)
        except LinkRegistryError as e:
            return self._fail(str(e))

        print(json.dumps({
            "success": True,
            "link": self._record_json(record),
            "message": f"Created short link: {record.short_url}"
        }, indent=2))
        return 0

    async def resolve(self, short_code: str) -> int:
        """Show the link for a short code without recording a click."""
        record = self.registry.resolve(short_code)
        if record is None:
            return self._fail(f"Short code '{short_code}' not found")

        print(json.dumps({
            "success": True,
            "link": self._record_json(record)
        }, indent=2))
        return 0

    async def click(self, short_code: str, source: str = "interface") -> int:
        """Record a click on a short code."""
        try:
            result = await self.registry.try_record_click(short_code, source=source)
        except LinkRegistryError as e:
            return self._fail(str(e))

        if result is ClickStatus.NOT_FOUND:
            return self._fail(f"Short code '{short_code}' not found")
        if result is ClickStatus.EXPIRED:
            return self._fail(f"Short code '{short_code}' has expired")

        record = self.registry.resolve(short_code)
        print(json.dumps({
            "success": True,
            "short_code": record.short_code,
            "original_url": record.original_url,
            "click_count": record.click_count
        }, indent=2))
        return 0

    async def delete(self, link_id: str) -> int:
        """Delete a link by id (succeeds if already gone)."""
        try:
            await self.registry.delete(link_id)
        except LinkRegistryError as e:
            return self._fail(str(e))

        print(json.dumps({"success": True, "deleted": link_id}, indent=2))
        return 0

    async def list_links(self) -> int:
        """List all links, most recent first."""
        links = [self._record_json(r) for r in self.registry.list_links()]
        print(json.dumps({
            "success": True,
            "count": len(links),
            "links": links
        }, indent=2))
        return 0

    async def health(self) -> int:
        """Check storage health."""
        health_status = await self.registry.health_check()
        print(json.dumps({
            "success": True,
            "health": health_status,
            "links": len(self.registry)
        }, indent=2))
        return 0 if health_status["overall"] else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Link Registry CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Create a link valid for an hour
  %(prog)s create https://example.com/long/url --validity-minutes 60

  # Create with custom code
  %(prog)s create https://example.com/long/url --custom-code mylink

  # Show a link
  %(prog)s resolve mylink

  # Record a visit
  %(prog)s click mylink

  # List links
  %(prog)s list
        """
    )

    parser.add_argument(
        "--storage-path",
        default=None,
        help="JSON file for the file backend (default: from STORAGE_PATH env or data/links.json)"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Verbose output"
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    create_parser = subparsers.add_parser("create", help="Create a short link")
    create_parser.add_argument("url", help="URL to shorten")
    create_parser.add_argument("--custom-code", help="Custom short code")
    create_parser.add_argument("--validity-minutes", type=int, help="Minutes the link stays active")

    resolve_parser = subparsers.add_parser("resolve", help="Show a link")
    resolve_parser.add_argument("short_code", help="Short code to look up")

    click_parser = subparsers.add_parser("click", help="Record a click")
    click_parser.add_argument("short_code", help="Short code that was visited")
    click_parser.add_argument("--source", default="interface", help="Access channel tag")

    delete_parser = subparsers.add_parser("delete", help="Delete a link")
    delete_parser.add_argument("link_id", help="Id of the link to delete")

    subparsers.add_parser("list", help="List links")
    subparsers.add_parser("health", help="Check storage health")

    return parser


async def run(cli: LinkRegistryCLI, args: argparse.Namespace) -> int:
    """Execute one parsed command against ``cli``."""
    try:
        try:
            await cli.initialize()
        except LinkRegistryError as e:
            return cli._fail(f"Failed to load registry: {e}")

        if args.command == "create":
            return await cli.create(args.url, args.custom_code, args.validity_minutes)
        elif args.command == "resolve":
            return await cli.resolve(args.short_code)
        elif args.command == "click":
            return await cli.click(args.short_code, args.source)
        elif args.command == "delete":
            return await cli.delete(args.link_id)
        elif args.command == "list":
            return await cli.list_links()
        elif args.command == "health":
            return await cli.health()
        return 1
    finally:
        await cli.cleanup()


async def main(argv=None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    overrides = {"storage_path": args.storage_path} if args.storage_path else {}
    cli = LinkRegistryCLI.from_config(Config(**overrides), verbose=args.verbose)
    return await run(cli, args)


if __name__ == "__main__":
    exit_code = asyncio.run(main())
    sys.exit(exit_code)
