#!/usr/bin/env python3
"""
Command line access to the offline posts cache.

Loads a screen's state the way a UI would (cache first, refresh in the
background) and prints the state it settles on.

Usage:
    offline-posts list
    offline-posts show 7 --json
    offline-posts clear
    offline-posts --base-url http://localhost:3000 --timeout-ms 2000 list
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

from .app import PostViewerApp
from .config import SyncConfig
from .exceptions import PostSyncError
from .logging_utils import configure_logging
from .models import Post
from .state.types import ErrorState, Loading, PostDetailSuccess, PostListSuccess

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="offline-posts",
        description="Show cached posts, refreshing them from the remote when possible",
    )
    parser.add_argument("--config", type=Path, help="Path to settings.yaml")
    parser.add_argument("--db", help="Cache database path (overrides settings)")
    parser.add_argument("--base-url", help="Remote base URL (overrides settings)")
    parser.add_argument(
        "--timeout-ms", type=int, help="Connect, socket and request timeout in milliseconds"
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )
    parser.add_argument("--json-logs", action="store_true", help="Emit logs as JSON lines")
    parser.add_argument("--json", action="store_true", help="Print the state as JSON")

    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("list", help="Show every post")
    show = subparsers.add_parser("show", help="Show a single post")
    show.add_argument("post_id", type=int, help="Post id")
    subparsers.add_parser("clear", help="Delete every cached post")
    return parser


def resolve_config(args: argparse.Namespace) -> SyncConfig:
    """Settings file and environment, then command line overrides."""
    config = SyncConfig.load(args.config)
    overrides: dict[str, Any] = {"remote": {}, "cache": {}}
    if args.base_url:
        overrides["remote"]["base_url"] = args.base_url
    if args.timeout_ms is not None:
        overrides["remote"]["timeout_ms"] = args.timeout_ms
    if args.db:
        overrides["cache"]["db_path"] = args.db
    return SyncConfig.from_mapping(overrides, base=config)


def state_to_dict(state: Any) -> dict[str, Any]:
    if isinstance(state, PostListSuccess):
        return {
            "state": "success",
            "is_offline": state.is_offline,
            "posts": [post.to_remote() for post in state.posts],
        }
    if isinstance(state, PostDetailSuccess):
        return {"state": "success", "is_offline": state.is_offline, "post": state.post.to_remote()}
    if isinstance(state, ErrorState):
        return {"state": "error", "message": state.message}
    return {"state": "loading"}


def format_post(post: Post, full: bool = False) -> str:
    line = f"#{post.id:<4} [author {post.author_id}] {post.title}"
    if full:
        line += f"\n\n{post.body}"
    return line


def render_state(state: Any, full: bool = False) -> str:
    if isinstance(state, Loading):
        return "No cached posts yet."
    if isinstance(state, ErrorState):
        return f"Error: {state.message}"

    lines = []
    if state.is_offline:
        lines.append("(offline: showing cached data)")
    if isinstance(state, PostListSuccess):
        lines.extend(format_post(post) for post in state.posts)
    else:
        lines.append(format_post(state.post, full=full))
    return "\n".join(lines)


async def run(args: argparse.Namespace) -> int:
    config = resolve_config(args)

    async with await PostViewerApp.create(config) as app:
        if args.command == "clear":
            await app.repository.clear_cache()
            print("Cache cleared.")
            return 0

        if args.command == "show":
            reducer = app.post_detail(args.post_id)
        else:
            reducer = app.post_list()

        async with reducer:
            await reducer.wait_idle()
            state = reducer.state

    if args.json:
        print(json.dumps(state_to_dict(state), indent=2))
    else:
        print(render_state(state, full=args.command == "show"))
    return 1 if isinstance(state, ErrorState) else 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(getattr(logging, args.log_level), json_lines=args.json_logs)

    try:
        return asyncio.run(run(args))
    except PostSyncError as e:
        logger.error(f"{args.command} failed: {e}")
        print(f"Error: {e.message}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
