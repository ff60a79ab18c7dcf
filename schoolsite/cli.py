"""
Command line entry point.

    schoolsite serve            run the storage adapter service
    schoolsite load             bootstrap the sync engine and report the source
    schoolsite export [-o FILE] write the loaded document as JSON
"""
import argparse
import json
import logging
import sys
from typing import List, Optional

from schoolsite.core.config import (
    DATA_KEY,
    SERVER_HOST,
    SERVER_PORT,
    STORE_URL,
    UPLOAD_DIR,
)
from schoolsite.core.db import check_db_connection
from schoolsite.core.logging import setup_logging

logger = logging.getLogger(__name__)


def cmd_serve(args) -> int:
    from schoolsite.server.app import create_app
    from schoolsite.storage.document_store import KeyValueDocumentStore
    from schoolsite.storage.sql_store import SqlKeyValueStore

    table = SqlKeyValueStore(url=args.store_url)
    if not check_db_connection(table.engine):
        logger.error(f"Document store at {args.store_url} is unreachable")
        return 1
    store = KeyValueDocumentStore(table, key=args.data_key)
    app = create_app(store, upload_dir=args.upload_dir)
    logger.info(f"Serving site document on http://{args.host}:{args.port}/api")
    app.run(host=args.host, port=args.port, debug=args.debug)
    return 0


def cmd_load(args) -> int:
    from schoolsite.sync.engine import SyncEngine

    engine = SyncEngine.from_config()
    result = engine.load()
    document = engine.document
    print(f"source: {result.source.value}")
    if result.warning:
        print(f"warning: {result.warning}")
    print(f"news: {len(document.news)}  events: {len(document.events)}  "
          f"albums: {len(document.albums)}  pages: {len(document.pages)}")
    engine.close()
    return 0


def cmd_export(args) -> int:
    from schoolsite.sync.engine import SyncEngine

    engine = SyncEngine.from_config()
    result = engine.load()
    payload = json.dumps(engine.export(), ensure_ascii=False, indent=2)
    engine.close()

    if args.output:
        with open(args.output, "w", encoding="utf-8") as handle:
            handle.write(payload)
        logger.info(f"Exported document from {result.source.value} to {args.output}")
    else:
        sys.stdout.write(payload + "\n")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="schoolsite",
        description="Local-first content store for the school website",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the storage adapter service")
    serve.add_argument("--host", default=SERVER_HOST, help=f"Bind address (default: {SERVER_HOST})")
    serve.add_argument("--port", type=int, default=SERVER_PORT, help=f"Port (default: {SERVER_PORT})")
    serve.add_argument("--store-url", default=STORE_URL, help="SQLAlchemy URL of the document store")
    serve.add_argument("--data-key", default=DATA_KEY, help=f"Document key (default: {DATA_KEY})")
    serve.add_argument("--upload-dir", default=str(UPLOAD_DIR), help="Directory for uploaded images")
    serve.add_argument("--debug", action="store_true", help="Enable the Flask debugger")
    serve.set_defaults(func=cmd_serve)

    load = subparsers.add_parser("load", help="Load the document and report where it came from")
    load.set_defaults(func=cmd_load)

    export = subparsers.add_parser("export", help="Write the loaded document as JSON")
    export.add_argument("-o", "--output", help="Output file (default: stdout)")
    export.set_defaults(func=cmd_export)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the schoolsite command."""
    args = build_parser().parse_args(argv)
    # Keep stdout clean when the document itself is written there
    writes_stdout = args.command == "export" and not args.output
    setup_logging("schoolsite", console=not writes_stdout)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
