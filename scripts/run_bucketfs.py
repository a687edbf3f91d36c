from __future__ import annotations

import argparse
import logging
import os
from dataclasses import replace
from pathlib import Path

from bucketfs import FileSystemSettings, S3FileSystem, load_settings, resolve_settings
from bucketfs.models import MatchStatus


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Match, copy and delete objects in S3.")
    parser.add_argument("--config", type=Path, default=None)
    parser.add_argument("--endpoint-url", type=str, default=os.getenv("S3_ENDPOINT_URL"))
    parser.add_argument("--region", type=str, default=None)
    parser.add_argument("--thread-pool-size", type=int, default=None)
    parser.add_argument("--verbose", action="store_true", default=False)

    sub = parser.add_subparsers(dest="command", required=True)

    match = sub.add_parser("match", help="Resolve paths or globs to objects.")
    match.add_argument("paths", nargs="+")

    for name, help_text in (("copy", "Copy objects."), ("rename", "Move objects.")):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("--src", action="append", required=True)
        cmd.add_argument("--dst", action="append", required=True)

    delete = sub.add_parser("delete", help="Delete objects in batches.")
    delete.add_argument("paths", nargs="+")
    return parser


def _build_settings(args: argparse.Namespace) -> FileSystemSettings:
    settings = load_settings(args.config) if args.config else resolve_settings()
    overrides: dict[str, object] = {}
    if args.endpoint_url:
        overrides["endpoint_url"] = args.endpoint_url
    if args.region:
        overrides["region"] = args.region
    if args.thread_pool_size:
        overrides["thread_pool_size"] = args.thread_pool_size
    return replace(settings, **overrides) if overrides else settings


def _run(filesystem: S3FileSystem, args: argparse.Namespace) -> int:
    if args.command == "match":
        rc = 0
        for spec, result in zip(args.paths, filesystem.match(args.paths)):
            if result.status is MatchStatus.OK:
                for item in result.matches:
                    print(f"{spec}\t{item.identifier}\t{item.size_bytes}")
                if not result.matches:
                    print(f"{spec}\tok\t0 matches")
            else:
                rc = 1
                print(f"{spec}\t{result.status.value}\t{result.error}")
        return rc

    if args.command == "copy":
        plans = filesystem.copy(args.src, args.dst)
        for src, dst, plan in zip(args.src, args.dst, plans):
            print(f"{src} -> {dst}\t{plan.kind.value}")
        return 0

    if args.command == "rename":
        results = filesystem.rename(args.src, args.dst)
    else:
        results = filesystem.delete(args.paths)
    failed = [err for res in results for err in res.errors]
    for err in failed:
        print(f"{err.key}\t{err.code}\t{err.message}")
    return 1 if failed else 0


def main(argv: list[str] | None = None, *, filesystem: S3FileSystem | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(message)s",
    )

    if filesystem is not None:
        return _run(filesystem, args)
    with S3FileSystem.from_settings(_build_settings(args)) as fs:
        return _run(fs, args)


if __name__ == "__main__":
    raise SystemExit(main())
