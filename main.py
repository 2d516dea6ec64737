"""Consumer Insights

Simple CLI for running the search and analysis flows from a terminal.
"""

import argparse
import asyncio
import json
import sys

from consumer_insights.config import settings
from consumer_insights.container import build_container
from consumer_insights.errors import PipelineError
from consumer_insights.models.records import SearchPeriod


def _print_json(data) -> None:
    print(json.dumps(data, ensure_ascii=False, indent=2, default=str))


async def run_search(container, args) -> None:
    period = SearchPeriod(args.period) if args.period else None
    outcome = await container.search.search(
        base_term=args.base,
        addendum=args.addendum,
        mode="natural" if args.natural else "compose",
        period=period,
        user_id=args.user,
        project_id=args.project,
    )
    print(f"Query: {outcome.query.query}")
    print("-" * 50)
    counts = outcome.report.to_counts()
    print(f"[*] found {counts['totalFound']}, valid {counts['validResults']}, saved {counts['savedToDatabase']}")
    for item in outcome.accepted:
        print(f"  - {item.candidate.title[:70]} ({item.candidate.display_link})")
        print(f"    {item.reason}")


async def run_batch(container, args) -> None:
    report = await container.batch.run(
        document_ids=args.ids or None,
        keyword=args.keyword,
        user_id=args.user,
    )
    print(f"[*] {report.message}: {report.succeeded}/{report.total} succeeded")
    for item in report.results:
        print(f"  [{item.status}] {item.id} {item.title or ''}")


async def run_extract_dates(container, args) -> None:
    _print_json((await container.date_backfill.extract_from_snippets(user_id=args.user)).to_dict())


async def run_reanalyze_dates(container, args) -> None:
    _print_json((await container.date_backfill.reanalyze_missing(user_id=args.user)).to_dict())


async def run_insights(container, args) -> None:
    insight = await container.premium_analyzer.generate(keyword=args.keyword, user_id=args.user)
    print(f"[*] {insight.get('total_reviews_analyzed')} reviews, score {insight.get('overall_sentiment_score')}")
    print(f"\n{'=' * 50}")
    print(insight.get("executive_summary", ""))


COMMANDS = {
    "search": run_search,
    "batch": run_batch,
    "extract-dates": run_extract_dates,
    "reanalyze-dates": run_reanalyze_dates,
    "insights": run_insights,
}


async def dispatch(args) -> int:
    container = build_container(settings)
    try:
        await COMMANDS[args.command](container, args)
    except PipelineError as e:
        print(f"\n[!] Error ({e.reason}): {e.message}", file=sys.stderr)
        return 1
    finally:
        await container.aclose()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Consumer Insights pipeline")
    sub = parser.add_subparsers(dest="command", required=True)

    search = sub.add_parser("search", help="Search, filter and store candidates")
    search.add_argument("--base", "-b", help="Base term")
    search.add_argument("--addendum", "-a", help="Comma-separated extra terms, or free text with --natural")
    search.add_argument("--natural", action="store_true", help="Extract the query from natural language")
    search.add_argument("--period", "-p", choices=[p.value for p in SearchPeriod])
    search.add_argument("--user", "-u")
    search.add_argument("--project")

    batch = sub.add_parser("batch", help="Deep-analyze pending documents")
    batch.add_argument("--keyword", "-k")
    batch.add_argument("--ids", nargs="*", default=[])
    batch.add_argument("--user", "-u")

    for name in ("extract-dates", "reanalyze-dates"):
        maintenance = sub.add_parser(name, help="Recover missing publish dates")
        maintenance.add_argument("--user", "-u")

    insights = sub.add_parser("insights", help="Generate advanced insights for a keyword")
    insights.add_argument("--keyword", "-k", required=True)
    insights.add_argument("--user", "-u", required=True)

    return parser


def main():
    args = build_parser().parse_args()
    sys.exit(asyncio.run(dispatch(args)))


if __name__ == "__main__":
    main()
