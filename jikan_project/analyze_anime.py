"""
Basic analysis over a collected Jikan anime dataset.
"""
from __future__ import annotations

import argparse
import json
from collections import Counter
from pathlib import Path
from typing import Any, Dict, Sequence

from .client import extract_listing

TOP_TITLES = 5


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Analyze collected anime listings.")
    parser.add_argument("input", type=Path, help="Input JSON file produced by collect_data")
    parser.add_argument(
        "--export",
        type=Path,
        help="Optional path to save analysis summary as JSON",
    )
    return parser.parse_args(argv)


def analyze(data: Dict[str, Any]) -> Dict[str, Any]:
    anime = extract_listing(data)
    type_counter = Counter()
    genre_counter = Counter()
    scored = []
    for item in anime:
        type_counter[item.get("type") or "Unknown"] += 1
        for genre in item.get("genres") or []:
            if not isinstance(genre, dict):
                continue
            genre_counter[genre.get("name", "Unknown")] += 1
        score = item.get("score")
        if isinstance(score, (int, float)):
            scored.append((score, item.get("title") or str(item["mal_id"])))

    scored.sort(key=lambda pair: pair[0], reverse=True)
    mean_score = round(sum(s for s, _ in scored) / len(scored), 2) if scored else None

    return {
        "records": len(anime),
        "type_top": type_counter.most_common(),
        "genre_top": genre_counter.most_common(),
        "mean_score": mean_score,
        "best_rated": [[title, score] for score, title in scored[:TOP_TITLES]],
    }


def main(argv: Sequence[str] | None = None) -> None:
    args = parse_args(argv)
    with args.input.open("r", encoding="utf-8") as fh:
        payload = json.load(fh)
    summary = analyze(payload)

    print(f"Total anime: {summary['records']}")
    print("By type:")
    for kind, count in summary["type_top"]:
        print(f"  {kind}: {count}")

    print("Top genres:")
    for genre, count in summary["genre_top"]:
        print(f"  {genre}: {count}")

    if summary["mean_score"] is not None:
        print(f"Mean score: {summary['mean_score']}")
        print("Best rated:")
        for title, score in summary["best_rated"]:
            print(f"  {title}: {score}")

    if args.export:
        args.export.parent.mkdir(parents=True, exist_ok=True)
        with args.export.open("w", encoding="utf-8") as fh:
            json.dump(summary, fh, ensure_ascii=False, indent=2)
        print(f"Summary exported to {args.export}")


if __name__ == "__main__":
    main()
