#!/usr/bin/env python3
# smart_collections/main.py
"""
Command-line entry point for the smart collection engine.

Each sub-command runs one engine operation against the local gallery store and
prints its result as JSON. It is designed to be a stateless, command-line
driven component: every invocation builds a fresh store handle and engine.
"""

# The config_service MUST be the very first import to ensure logging is
# configured before any other modules attempt to log.
from smart_collections.services import config

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, List, Optional

from smart_collections.engine import SmartCollectionEngine
from smart_collections.models import ActionResult, ApplyRequest, Asset
from smart_collections.ranking import RankerConfig
from smart_collections.services import GalleryStore

# Initialize the logger for this module.
logger = logging.getLogger(__name__)


def _load_json(path: str) -> Any:
    with open(Path(path), 'r', encoding='utf-8') as f:
        return json.load(f)


def _emit(payload: Any) -> None:
    print(json.dumps(payload, indent=2, default=str))


def _emit_result(result: ActionResult) -> int:
    _emit(result.to_dict())
    return 0 if result.success else 2


def _build_engine(args: argparse.Namespace, store: GalleryStore) -> SmartCollectionEngine:
    return SmartCollectionEngine(args.org, store, RankerConfig.from_config(config))


def run_import_assets(args: argparse.Namespace, store: GalleryStore) -> int:
    """Loads an asset manifest (a list, or {"assets": [...]}) into a gallery, creating the gallery if needed."""
    manifest = _load_json(args.file)
    records = manifest.get('assets', []) if isinstance(manifest, dict) else manifest
    assets = [Asset.from_dict(record) for record in records]
    store.create_gallery(args.org, name=args.gallery_name or args.gallery_id, gallery_id=args.gallery_id)
    count = store.add_assets(args.gallery_id, args.org, assets)
    store.log_event("INFO", f"Imported {count} asset(s) into gallery {args.gallery_id}")
    _emit({'success': True, 'data': {'gallery_id': args.gallery_id, 'imported': count}})
    return 0


def run_analyze(args: argparse.Namespace, store: GalleryStore) -> int:
    return _emit_result(_build_engine(args, store).analyze_photos_for_smart_collections(args.gallery_id))


def run_apply(args: argparse.Namespace, store: GalleryStore) -> int:
    asset_ids = [a.strip() for a in args.asset_ids.split(',') if a.strip()]
    request = ApplyRequest(name=args.name, asset_ids=asset_ids, description=args.description)
    return _emit_result(_build_engine(args, store).apply_smart_collection(args.gallery_id, request))


def run_apply_all(args: argparse.Namespace, store: GalleryStore) -> int:
    """Applies a JSON list of suggestions, e.g. the `suggestions` array printed by `analyze`."""
    payload = _load_json(args.file)
    if isinstance(payload, dict):
        payload = payload.get('data', payload).get('suggestions', [])
    return _emit_result(_build_engine(args, store).apply_all_smart_collections(args.gallery_id, payload))


def run_collections(args: argparse.Namespace, store: GalleryStore) -> int:
    collections = store.list_collections(args.gallery_id, args.org)
    _emit({'success': True, 'data': [c.to_dict() for c in collections]})
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Smart Collection Suggester")
    parser.add_argument('--db', type=str, help="Path to the gallery store (defaults to store.path in config.yaml).")
    subparsers = parser.add_subparsers(dest='command', required=True)

    def gallery_command(name: str, help_text: str) -> argparse.ArgumentParser:
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument('--gallery-id', required=True)
        sub.add_argument('--org', required=True, help="Organization id of the caller.")
        return sub

    sub = gallery_command('import-assets', "Import an asset manifest into a gallery.")
    sub.add_argument('--file', required=True)
    sub.add_argument('--gallery-name')
    sub.set_defaults(handler=run_import_assets)

    gallery_command('analyze', "Suggest collections for uncategorized photos.").set_defaults(handler=run_analyze)

    sub = gallery_command('apply', "Create one collection from a suggestion.")
    sub.add_argument('--name', required=True)
    sub.add_argument('--asset-ids', required=True, help="Comma-separated asset ids.")
    sub.add_argument('--description')
    sub.set_defaults(handler=run_apply)

    sub = gallery_command('apply-all', "Apply a list of suggestions in order.")
    sub.add_argument('--file', required=True)
    sub.set_defaults(handler=run_apply_all)

    gallery_command('collections', "List the gallery's collections.").set_defaults(handler=run_collections)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the command line.

    Parses arguments and runs the requested command within a top-level error
    handler to ensure all failures are logged.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        logger.info(f"=== Smart Collections: '{args.command}' starting ===")
        store = GalleryStore(args.db) if args.db else GalleryStore()
        exit_code = args.handler(args, store)
        logger.info(f"=== Smart Collections: '{args.command}' finished (exit {exit_code}) ===")
        return exit_code
    except Exception as e:
        # Master catch-all so the failure is logged with its traceback before exiting.
        logger.critical(f"FATAL: An unhandled exception occurred: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
