"""CLI entry point for the activity recommender."""

import argparse
import asyncio
import json
import logging
import sys
from typing import Any

from recommender.core.config import Settings
from recommender.core.db import init_db
from recommender.core.schemas import Activity, ActivityRecommendation, ScoredActivity
from recommender.crawlers import available_crawlers, get_crawler
from recommender.ranking.engine import RankingEngine


def _add_common(parser: argparse.ArgumentParser, *, export: bool = True) -> None:
    parser.add_argument(
        "--config",
        default=None,
        help="Path to settings YAML file (default: built-in defaults)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )
    if export:
        parser.add_argument(
            "--export",
            choices=["json"],
            help="Export results to format (json)",
        )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Activity recommender - recommend and search catalog activities",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # --- recommend ---
    recommend_parser = subparsers.add_parser("recommend", help="Recommend activities for a user")
    recommend_parser.add_argument("--user", type=int, required=True, help="User ID")
    recommend_parser.add_argument("--limit", type=int, default=None, help="Max results")
    recommend_parser.add_argument("--type", dest="activity_type", help="Activity type filter")
    recommend_parser.add_argument(
        "--campus-only",
        action="store_true",
        help="Only recommend campus activities",
    )
    recommend_parser.add_argument(
        "--target-role",
        help="Target job role (enables role-fit blending; implies --scores)",
    )
    recommend_parser.add_argument(
        "--scores",
        action="store_true",
        help="Annotate recommendations with blended scores",
    )
    _add_common(recommend_parser)

    # --- search ---
    search_parser = subparsers.add_parser("search", help="Semantic search over the catalog")
    search_parser.add_argument("query", help="Free-text query")
    search_parser.add_argument("--user", type=int, default=None, help="Personalize for user ID")
    search_parser.add_argument("--limit", type=int, default=None, help="Max results")
    _add_common(search_parser)

    # --- trending ---
    trending_parser = subparsers.add_parser("trending", help="Newest activities")
    trending_parser.add_argument("--limit", type=int, default=None, help="Max results")
    trending_parser.add_argument("--type", dest="activity_type", help="Activity type filter")
    _add_common(trending_parser)

    # --- similar ---
    similar_parser = subparsers.add_parser("similar", help="Activities similar to one activity")
    similar_parser.add_argument("--activity", type=int, required=True, help="Activity ID")
    similar_parser.add_argument("--limit", type=int, default=None, help="Max results")
    _add_common(similar_parser)

    # --- ingest ---
    ingest_parser = subparsers.add_parser("ingest", help="Crawl a source into the catalog")
    ingest_parser.add_argument(
        "--source",
        default="linkareer",
        choices=available_crawlers(),
        help="Crawler source (default: linkareer)",
    )
    ingest_parser.add_argument(
        "--mode",
        default="partial",
        choices=["total", "partial"],
        help="total: full crawl, partial: newest only (default: partial)",
    )
    ingest_parser.add_argument("--file", help="Activity file (.json/.yaml) for --source manual")
    _add_common(ingest_parser)

    # --- import-users ---
    users_parser = subparsers.add_parser("import-users", help="Seed users and interests")
    users_parser.add_argument("--file", required=True, help="Users file (.yaml/.json)")
    _add_common(users_parser, export=False)

    return parser.parse_args(argv)


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def load_settings(path: str | None) -> Settings:
    """Load settings from YAML, or defaults when no path is given."""
    if path is None:
        return Settings()
    return Settings.from_yaml(path)


def _activity_row(activity: Activity) -> dict[str, Any]:
    return {
        "id": activity.id,
        "title": activity.title,
        "type": activity.type.value,
        "is_campus": activity.is_campus,
        "tags": activity.tag_names,
        "url": activity.url,
        "created_at": activity.created_at.isoformat(),
    }


def to_rows(results: list[Any]) -> list[dict[str, Any]]:
    """Flatten engine results into JSON-ready dicts."""
    rows: list[dict[str, Any]] = []
    for r in results:
        if isinstance(r, ActivityRecommendation):
            row = _activity_row(r.activity)
            row.update(
                recommendation_score=r.recommendation_score,
                interest_score=r.interest_score,
                embedding_score=r.embedding_score,
                role_fit_score=r.role_fit_score,
                expected_score_increase=r.expected_score_increase,
            )
        elif isinstance(r, ScoredActivity):
            row = _activity_row(r.activity)
            row["score"] = r.score
        else:
            row = _activity_row(r)
        rows.append(row)
    return rows


def export_results_json(results: list[Any]) -> str:
    """Export engine results as a JSON string."""
    return json.dumps(to_rows(results), indent=2, ensure_ascii=False)


def print_results(results: list[Any], export_format: str | None) -> None:
    if export_format == "json":
        print(export_results_json(results))
        return

    if not results:
        print("No activities found.")
        return
    for row in to_rows(results):
        score = row.get("recommendation_score", row.get("score"))
        prefix = f"[{score:6.1f}] " if score is not None else ""
        print(f"  {prefix}#{row['id']} {row['type']:<7} {row['title']}")
        if row.get("role_fit_score") is not None:
            print(
                f"           role fit {row['role_fit_score']:.1f}, "
                f"expected +{row['expected_score_increase']}"
            )


def cmd_rank(args: argparse.Namespace, settings: Settings) -> None:
    """Handle recommend, search, trending and similar subcommands."""
    conn = init_db(settings.database.path)
    try:
        engine = RankingEngine.from_settings(conn, settings)
        if args.command == "recommend":
            if args.scores or args.target_role:
                results: list[Any] = engine.recommend_with_scores(
                    args.user,
                    args.limit,
                    args.activity_type,
                    args.campus_only,
                    args.target_role,
                )
            else:
                results = engine.recommend(
                    args.user, args.limit, args.activity_type, args.campus_only,
                )
        elif args.command == "search":
            results = engine.search(args.query, args.limit, args.user)
        elif args.command == "trending":
            results = engine.trending(args.limit, args.activity_type)
        else:
            results = engine.similar_to(args.activity, args.limit)
    finally:
        conn.close()

    print_results(results, args.export)


def cmd_ingest(args: argparse.Namespace, settings: Settings) -> None:
    """Handle ingest subcommand."""
    from recommender.ingest.pipeline import run_ingest

    crawler = get_crawler(args.source, settings, path=args.file)
    conn = init_db(settings.database.path)
    try:
        result = asyncio.run(run_ingest(crawler, conn, mode=args.mode))
    finally:
        conn.close()

    if args.export == "json":
        print(json.dumps(result.to_dict(), indent=2))
        return
    print(f"\nIngest complete: {result.raw_count} raw, {result.filtered_count} filtered, "
          f"{result.new_count} new activities written to DB.")


def cmd_import_users(args: argparse.Namespace, settings: Settings) -> None:
    """Handle import-users subcommand."""
    from recommender.ingest.users import import_users

    conn = init_db(settings.database.path)
    try:
        count = import_users(conn, args.file)
    finally:
        conn.close()
    print(f"Imported {count} users into {settings.database.path}")


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    setup_logging(args.verbose)

    try:
        settings = load_settings(args.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        if args.command == "ingest":
            cmd_ingest(args, settings)
        elif args.command == "import-users":
            cmd_import_users(args, settings)
        else:
            cmd_rank(args, settings)
    except (FileNotFoundError, ImportError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
