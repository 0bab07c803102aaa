"""
Jikan API data collection script.

Example:
    python -m jikan_project.collect_data top --filter airing --output data/top_airing.json
    python -m jikan_project.collect_data search --query "naruto" --genre 27 --output data/naruto.json
"""
from __future__ import annotations

import argparse
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Sequence

from dotenv import load_dotenv

from .client import JikanClient, TopFilter, extract_item, extract_listing

load_dotenv()

DEFAULT_SAMPLE_FILE = Path(__file__).with_name("data") / "sample_anime.json"
QUERIES = ("seasonal", "top", "recent", "search", "details", "characters", "genres")


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Collect anime data from the Jikan API.")
    parser.add_argument("query", choices=QUERIES, help="Catalog endpoint to query")
    parser.add_argument(
        "--filter",
        default=TopFilter.ALL.value,
        help="Ranking filter for 'top': %s (unknown values mean all)" % ", ".join(f.value for f in TopFilter),
    )
    parser.add_argument("--query", dest="text", help="Search text for 'search'")
    parser.add_argument("--genre", type=int, help="Genre id to restrict 'search' to")
    parser.add_argument("--id", dest="anime_id", help="Anime id for 'details' and 'characters'")
    parser.add_argument(
        "--retries",
        type=int,
        default=JikanClient.DEFAULT_MAX_RETRIES,
        help="Attempts per request (default: %(default)s)",
    )
    parser.add_argument("--output", type=Path, required=True, help="Path to write collected JSON data")
    parser.add_argument(
        "--base-url",
        default=os.getenv("JIKAN_BASE_URL", JikanClient.DEFAULT_BASE_URL),
        help="API base URL (default: %(default)s). Can also set env JIKAN_BASE_URL.",
    )
    parser.add_argument("--offline", action="store_true", help="Use bundled sample data instead of live API")
    parser.add_argument(
        "--offline-fallback",
        action="store_true",
        help="Use sample data when the live API returns nothing",
    )
    parser.add_argument(
        "--sample",
        type=Path,
        default=DEFAULT_SAMPLE_FILE,
        help="Path to sample data (used when --offline)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    if args.retries < 1:
        parser.error("--retries must be at least 1")
    if args.query == "search" and not args.text:
        parser.error("'search' requires --query")
    if args.query in ("details", "characters") and not args.anime_id:
        parser.error(f"'{args.query}' requires --id")
    return args


def load_sample_anime(sample_path: Path) -> List[dict]:
    if not sample_path.exists():
        raise FileNotFoundError(f"Sample data not found: {sample_path}")
    with sample_path.open("r", encoding="utf-8") as fh:
        return extract_listing(json.load(fh))


def fetch(client: JikanClient, args: argparse.Namespace) -> Any:
    """Run the requested query and return the raw outcome."""
    if args.query == "seasonal":
        return client.get_seasonal_anime()
    if args.query == "top":
        return client.get_top_anime(args.filter)
    if args.query == "recent":
        return client.get_recent_anime()
    if args.query == "search":
        return client.search_anime(args.text, args.genre)
    if args.query == "details":
        return client.get_anime_details(args.anime_id)
    if args.query == "characters":
        return client.get_anime_characters(args.anime_id)
    return client.get_anime_genres()


def collect_live_data(args: argparse.Namespace) -> List[dict]:
    client = JikanClient(base_url=args.base_url, max_retries=args.retries)
    outcome = fetch(client, args)
    if args.query == "details":
        item = extract_item(outcome)
        return [item] if item else []
    return extract_listing(outcome, require_id=args.query != "characters")


def build_meta(args: argparse.Namespace, record_count: int) -> Dict[str, Any]:
    meta: Dict[str, Any] = {"query": args.query, "record_count": record_count}
    if args.query == "top":
        meta["filter"] = TopFilter.parse(args.filter).value
    if args.query == "search":
        meta["search"] = args.text
        meta["genre"] = args.genre
    if args.query in ("details", "characters"):
        meta["id"] = args.anime_id
    return meta


def main(argv: Sequence[str] | None = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(message)s",
    )
    args.output.parent.mkdir(parents=True, exist_ok=True)

    if args.offline:
        records = load_sample_anime(args.sample)
    else:
        records = collect_live_data(args)
        if not records and args.offline_fallback:
            print("API returned no records, falling back to sample data.")
            records = load_sample_anime(args.sample)

    payload = {"meta": build_meta(args, len(records)), "data": records}
    with args.output.open("w", encoding="utf-8") as fh:
        json.dump(payload, fh, ensure_ascii=False, indent=2)

    print(f"Written {len(records)} records to {args.output}")


if __name__ == "__main__":
    main()
