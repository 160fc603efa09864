"""Command-line entry point for manifests and one-off reconcile attempts.

Subcommands
-----------
``gitsync validate MANIFEST``
    Check a YAML manifest without touching the store.
``gitsync apply MANIFEST``
    Create or update the manifest's resources in the store.
``gitsync reconcile {sync,repository} NAMESPACE/NAME``
    Run one attempt inline and print the resulting Ready verdict.
"""

from __future__ import annotations

import argparse
import asyncio
import typing as typ
from pathlib import Path

from gitsync.common.slug import parse_object_key
from gitsync.config import ControllerConfig
from gitsync.logging import configure_logging, get_logger, log_warning
from gitsync.resources import ManifestValidationError, load_manifest
from gitsync.runtime import RuntimeConfigError, controller_runtime
from gitsync.store import SqlObjectStore

if typ.TYPE_CHECKING:
    from gitsync.controller import ReconcileResult
    from gitsync.resources import Resource

logger = get_logger(__name__)

_EXIT_OK = 0
_EXIT_FAILED = 1
_EXIT_USAGE = 2


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="gitsync", description=__doc__)
    parser.add_argument(
        "--database-url",
        default=None,
        help="Object store URL (defaults to GITSYNC_DATABASE_URL)",
    )
    subcommands = parser.add_subparsers(dest="command", required=True)

    validate = subcommands.add_parser("validate", help="Validate a manifest")
    validate.add_argument("manifest", type=Path)

    apply = subcommands.add_parser("apply", help="Store a manifest's resources")
    apply.add_argument("manifest", type=Path)

    reconcile = subcommands.add_parser("reconcile", help="Run one attempt inline")
    reconcile.add_argument("kind", choices=["sync", "repository"])
    reconcile.add_argument("key", help="Object key as NAMESPACE/NAME or NAME")
    return parser


def _load(path: Path) -> list[Resource] | None:
    try:
        return load_manifest(path)
    except ManifestValidationError as exc:
        print(f"Manifest validation failed for {path}:")
        for issue in exc.issues:
            print(f"  - {issue}")
        return None


async def _apply(database_url: str, resources: list[Resource]) -> None:
    store, engine = await SqlObjectStore.from_url(database_url)
    try:
        for resource in resources:
            stored = await store.apply(resource)
            print(
                f"{type(stored).__name__.lower()} {stored.metadata.key} "
                f"applied (generation {stored.metadata.generation})"
            )
    finally:
        await engine.dispose()


async def _reconcile(
    config: ControllerConfig, database_url: str | None, kind: str, key: str
) -> ReconcileResult:
    namespace, name = parse_object_key(key)
    async with controller_runtime(config, database_url=database_url) as runtime:
        if kind == "sync":
            return await runtime.sync_reconciler.reconcile(namespace, name)
        return await runtime.repository_reconciler.reconcile(namespace, name)


def main(argv: list[str] | None = None) -> int:
    """Run the gitsync CLI.

    Parameters
    ----------
    argv : list[str] | None, optional
        Command-line arguments. ``None`` defaults to ``sys.argv``.

    Returns
    -------
    int
        0 on success (or a Ready verdict), 1 on validation failure or a
        not-Ready verdict, 2 on a usage or configuration error.

    """
    args = _build_parser().parse_args(argv)
    try:
        config = ControllerConfig.from_env()
    except ValueError as exc:
        print(f"Invalid configuration: {exc}")
        return _EXIT_USAGE

    normalized_level, invalid_level = configure_logging(config.log_level)
    if invalid_level:
        log_warning(
            logger,
            "Invalid GITSYNC_LOG_LEVEL %r, falling back to %s",
            config.log_level,
            normalized_level,
        )

    database_url = args.database_url or config.database_url

    if args.command in {"validate", "apply"}:
        resources = _load(args.manifest)
        if resources is None:
            return _EXIT_FAILED
        if args.command == "validate":
            print(f"manifest {args.manifest} is valid ({len(resources)} resources)")
            return _EXIT_OK
        if not database_url:
            print("GITSYNC_DATABASE_URL or --database-url is required")
            return _EXIT_USAGE
        asyncio.run(_apply(database_url, resources))
        return _EXIT_OK

    try:
        result = asyncio.run(_reconcile(config, database_url, args.kind, args.key))
    except (RuntimeConfigError, ValueError) as exc:
        print(f"Cannot reconcile: {exc}")
        return _EXIT_USAGE

    if result.stalled:
        verdict = "stalled"
    else:
        verdict = "ready" if result.ready else "not ready"
    print(f"{args.kind} {args.key}: {verdict} ({result.reason}) {result.message}")
    return _EXIT_OK if result.ready else _EXIT_FAILED


if __name__ == "__main__":
    raise SystemExit(main())
