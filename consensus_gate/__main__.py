"""CLI entry point: python -m consensus_gate <document>"""

from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys
from dataclasses import replace
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

from consensus_gate.config import RECONCILER_MODES, get_settings
from consensus_gate.contracts import QualityGateResult, Source
from consensus_gate.event_log.metrics import collect_gate_events, compute_gate_metrics
from consensus_gate.event_log.writer import EventLog
from consensus_gate.gate import build_quality_gate


def _generate_run_id() -> str:
    """Generate a unique run ID: gate-YYYYMMDD-HHMMSS-XXXX."""
    ts = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
    suffix = os.urandom(2).hex()
    return f"gate-{ts}-{suffix}"


def _jsonable(value):
    if isinstance(value, Enum):
        return value.value
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="consensus-gate",
        description="Multi-evaluator consensus scoring and quality gate for generated documents",
    )
    parser.add_argument(
        "document",
        type=str,
        nargs="?",
        default=None,
        help="Path to the document to evaluate (markdown or plain text)",
    )
    parser.add_argument(
        "--sources",
        type=str,
        default=None,
        metavar="FILE",
        help="JSON file with a list of sources ({title, url, content?}) for the fixers",
    )
    parser.add_argument(
        "--target-score",
        type=float,
        default=None,
        help="Score the gate refines towards (default: from config)",
    )
    parser.add_argument(
        "--max-attempts",
        type=int,
        default=None,
        help="Maximum refinement attempts (default: from config)",
    )
    parser.add_argument(
        "--no-discussion",
        action="store_true",
        default=False,
        help="Skip the discussion round when evaluators disagree",
    )
    parser.add_argument(
        "--no-tiebreaker",
        action="store_true",
        default=False,
        help="Never call the arbiter; disputes settle on the median",
    )
    parser.add_argument(
        "--reconciler",
        type=str,
        choices=list(RECONCILER_MODES),
        default=None,
        help="How edits are applied: 'text' (exact replacement) or 'model'",
    )
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Write the full gate result as JSON to this path",
    )
    parser.add_argument(
        "--run-id",
        type=str,
        default=None,
        help="Run ID for the event log directory (default: generated)",
    )
    parser.add_argument(
        "--metrics",
        action="store_true",
        default=False,
        help="Print gate metrics across logged runs and exit",
    )
    args = parser.parse_args(argv)

    if not args.document and not args.metrics:
        parser.error("a document path is required (or use --metrics)")

    return args


def load_sources(path: str) -> list[Source]:
    """Read a JSON list of sources; entries without a title or url are dropped."""
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(raw, list):
        raise ValueError(f"{path}: expected a JSON list of sources")
    sources: list[Source] = []
    for entry in raw:
        if not isinstance(entry, dict) or not entry.get("title") or not entry.get("url"):
            continue
        source = Source(title=str(entry["title"]), url=str(entry["url"]))
        if entry.get("content"):
            source["content"] = str(entry["content"])
        sources.append(source)
    return sources


def _print_result(result: QualityGateResult) -> None:
    print(f"Tier: {result['tier'].value} | Score: {result['final_score']:.1f}/10", file=sys.stderr)
    print(f"Decision: {result['decision']['reasoning']}", file=sys.stderr)
    history = " -> ".join(f"{s['score']:.1f} ({s['tier'].value})" for s in result["tier_history"])
    print(f"History: {history}", file=sys.stderr)
    refinement = result["refinement"]
    if refinement is not None:
        print(f"Refinement: {refinement['stop_reason'].value}", file=sys.stderr)
        if refinement.get("warning_reason"):
            print(f"WARNING: {refinement['warning_reason']}", file=sys.stderr)
    if result["needs_human_review"]:
        print(f"Human review: {result['review_reason']}", file=sys.stderr)


async def run(args: argparse.Namespace) -> int:
    settings = get_settings()

    overrides: dict = {}
    if args.target_score is not None:
        overrides["target_score"] = args.target_score
    if args.max_attempts is not None:
        overrides["max_refinement_attempts"] = args.max_attempts
    if args.no_discussion:
        overrides["discussion_enabled"] = False
    if args.no_tiebreaker:
        overrides["tiebreaker_enabled"] = False
    if args.reconciler:
        overrides["reconciler_mode"] = args.reconciler
    if overrides:
        settings = replace(settings, **overrides)

    run_log_dir = Path(settings.run_log_dir)

    if args.metrics:
        metrics = compute_gate_metrics(collect_gate_events(run_log_dir))
        print(json.dumps(metrics, indent=2))
        return 0

    errors = settings.validate()
    if errors:
        for err in errors:
            print(f"ERROR: {err}", file=sys.stderr)
        return 1
    for warning in settings.warnings():
        print(f"WARNING: {warning}", file=sys.stderr)

    doc_path = Path(args.document)
    if not doc_path.is_file():
        print(f"ERROR: Document not found: {doc_path}", file=sys.stderr)
        return 1
    document = doc_path.read_text(encoding="utf-8")
    sources = load_sources(args.sources) if args.sources else None

    run_id = args.run_id or _generate_run_id()
    event_log = EventLog(run_log_dir, run_id)
    gate = build_quality_gate(settings, event_log=event_log)

    print(f"Evaluating: {doc_path} ({len(document):,} chars)", file=sys.stderr)
    print(
        f"Target: {settings.target_score:.1f} | Max attempts: {settings.max_refinement_attempts}",
        file=sys.stderr,
    )
    print("---", file=sys.stderr)

    result = await gate.run(document, sources)

    _print_result(result)
    print(f"Event log: {event_log.path}", file=sys.stderr)
    print(
        f"Completed: {result['attempts']} scoring cycle(s) | {gate.total_tokens:,} tokens | "
        f"${gate.total_cost:.4f}",
        file=sys.stderr,
    )

    if args.output:
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(
            json.dumps(result, indent=2, ensure_ascii=False, default=_jsonable),
            encoding="utf-8",
        )
        print(f"Result saved to: {output_path}", file=sys.stderr)
    else:
        sys.stdout.buffer.write(result["final_document"].encode("utf-8"))
        sys.stdout.buffer.write(b"\n")
        sys.stdout.buffer.flush()

    return 0 if result["publishable"] else 2


def main() -> None:
    args = parse_args()
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
