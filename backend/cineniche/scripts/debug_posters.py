#!/usr/bin/env python3
"""Show which matching rule fires for poster titles."""

import sys
import argparse
from typing import List, Sequence

import structlog

from cineniche.posters.matching import PosterTitleResolver
from cineniche.posters.sources import DirectoryPosterSource
from cineniche.service.config import config

logger = structlog.get_logger(__name__)

# Titles that have historically matched the wrong poster
SAMPLE_TITLES = [
    "FriendButMarried",
    "FriendButMarried 2",
    "'79",
    "'86",
    "Selfie",
    "Selfie 69",
]

def format_trace(resolver: PosterTitleResolver, title: str, candidates: Sequence[str]) -> List[str]:
    """Human readable lines for one resolution."""
    trace = resolver.explain(title, candidates)
    lines = [f'==== TESTING: "{title}" ====']
    for rule, path in trace.attempts:
        lines.append(f"  {rule:<13} {path or '-'}")
    if trace.result.matched:
        lines.append(f"  => {trace.result.path} (rule: {trace.result.rule})")
    else:
        lines.append(f"  => {trace.result.status.value}")
    return lines

def main(argv: Sequence[str] = None) -> int:
    parser = argparse.ArgumentParser(description="Debug poster title matching")
    parser.add_argument("titles", nargs="*", help="Titles to resolve (default: built-in samples)")
    parser.add_argument("--poster-dir", default=config.POSTER_DIR, help="Directory of poster images")
    parser.add_argument("--base-url", default=config.POSTER_BASE_URL, help="Prefix for poster paths")
    args = parser.parse_args(argv)

    candidates = DirectoryPosterSource(args.poster_dir, base_url=args.base_url).list_posters()
    resolver = PosterTitleResolver(config.POSTER_DIRECTORY_MARKER)
    logger.info("Debugging poster matching", posters=len(candidates))

    for title in args.titles or SAMPLE_TITLES:
        print("\n".join(format_trace(resolver, title, candidates)))
    return 0

if __name__ == "__main__":
    sys.exit(main())
