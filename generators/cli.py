"""
CLI for synthetic telemetry generation.

Usage:
    python -m generators.cli generate --preset growth --seed 42 --output-dir ./data/generated
    python -m generators.cli generate --plan ./plans/launch.json --only users,tickets
    python -m generators.cli upload --input ./data/generated/events.json
    python -m generators.cli report --input ./data/generated/events.json
    python -m generators.cli validate --input ./data/generated/events.json --preset growth
"""

import argparse
import json
import sys
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from app.config import ConfigurationError, Settings, get_settings
from app.core.logging import configure_logging
from app.models.schemas import PeriodManifest, RunManifest
from app.services.analytics.aggregator import EventAggregator
from app.services.ingestion import BatchSink, SinkError
from data_quality.validator import EventValidator
from generators.geo import GeoExhaustedError
from generators.io import load_events, load_records, save_events
from generators.models import Event
from generators.plan import PRESETS, Plan, PlanError, get_preset, resolve_plan
from generators.synthetic_data import STAGES, SyntheticDataGenerator
from observability.alerts import AlertType, get_alert_manager

EVENTS_FILE = "events.json"
MANIFEST_FILE = "manifest.json"


def format_size(size_bytes: float) -> str:
    """Format bytes as human readable string."""
    for unit in ["B", "KB", "MB", "GB"]:
        if size_bytes < 1024:
            return f"{size_bytes:.2f} {unit}"
        size_bytes /= 1024
    return f"{size_bytes:.2f} TB"


def parse_stages(value: Optional[str]) -> list[str]:
    if not value:
        return list(STAGES)
    stages = [s.strip() for s in value.split(",") if s.strip()]
    unknown = set(stages) - set(STAGES)
    if unknown:
        raise argparse.ArgumentTypeError(
            f"Unknown stages: {sorted(unknown)}. Use any of: {list(STAGES)}"
        )
    return stages


def upload_events(events: list[Event], settings: Settings, api_key: str) -> int:
    """Send events to the configured sink; return 1 on transport failure."""
    with BatchSink(
        api_key=api_key,
        host=settings.POSTHOG_HOST,
        batch_size=settings.UPLOAD_BATCH_SIZE,
        timeout=settings.UPLOAD_TIMEOUT_SECONDS,
    ) as sink:
        try:
            sent = sink.send(events)
        except SinkError as e:
            get_alert_manager().emit_failure(
                AlertType.UPLOAD_FAILURE,
                "upload",
                str(e),
                batch_index=e.batch_index,
                sent=e.sent,
            )
            print(f"Error: {e} ({e.sent:,} events were sent before the failure)")
            return 1

    print(f"Uploaded {sent:,} events to {settings.POSTHOG_HOST}")
    return 0


def cmd_generate(args: argparse.Namespace) -> int:
    """Generate a telemetry event stream for a plan."""
    settings = get_settings()
    alerts = get_alert_manager()

    # Fail before generating anything if the upload could not happen
    api_key = None
    if args.upload:
        try:
            api_key = settings.require_api_key()
        except ConfigurationError as e:
            alerts.emit_failure(AlertType.RUN_FAILURE, "generate", str(e))
            print(f"Error: {e}")
            return 1

    try:
        plan = resolve_plan(args.plan, args.preset)
    except PlanError as e:
        alerts.emit_failure(AlertType.RUN_FAILURE, "generate", str(e))
        print(f"Error: {e}")
        return 1

    seed = args.seed if args.seed is not None else settings.GENERATION_SEED
    output_dir = Path(args.output_dir or settings.OUTPUT_DIR)

    print("\nSynthetic Telemetry Generator")
    print("=============================")
    print(f"Plan: {args.plan or args.preset}")
    print(f"Periods: {', '.join(t.period for t in plan.periods)}")
    print(f"Stages: {', '.join(args.only)}")
    print(f"Output: {output_dir}")
    print(f"Seed: {seed}")
    print()

    start_time = time.time()
    generator = SyntheticDataGenerator(plan, seed=seed, settings=settings)
    try:
        result = generator.generate_all(include=args.only)
    except GeoExhaustedError as e:
        print(f"Error: {e}")
        return 1
    elapsed = time.time() - start_time

    events_path = output_dir / EVENTS_FILE
    size = save_events(result.events, events_path)
    print(f"\nSaved {len(result.events):,} events to {events_path} ({format_size(size)})")

    manifest = RunManifest(
        seed=seed,
        plan=args.plan or args.preset,
        stages=args.only,
        events_file=EVENTS_FILE,
        total_events=len(result.events),
        total_users=len(result.users),
        size_bytes=size,
        generation_time_seconds=elapsed,
        generated_at=datetime.now(timezone.utc),
        periods=[
            PeriodManifest(
                period=s.period,
                signups=s.signups,
                monthly_active_users=s.monthly_active_users,
                logins=s.logins,
                data_events=s.data_events,
                volume_mb=s.volume_mb,
                tickets_raised=s.tickets_raised,
                tickets_resolved=s.tickets_resolved,
                event_count=s.event_count,
            )
            for s in result.summaries
        ],
        warnings=[w.to_dict() for w in result.warnings],
    )
    manifest_path = output_dir / MANIFEST_FILE
    with open(manifest_path, "w") as f:
        json.dump(manifest.model_dump(mode="json"), f, indent=2)
    print(f"Manifest written to: {manifest_path}")

    if result.warnings:
        print(f"\nWarnings ({len(result.warnings)}):")
        for warning in result.warnings:
            print(f"  [WARN] {warning.message}")

    print(f"\n{'='*60}")
    print("Generation Summary")
    print(f"{'='*60}")
    print(f"Total users: {len(result.users):,}")
    print(f"Total events: {len(result.events):,}")
    print(f"Time elapsed: {elapsed:.1f}s")
    print()

    if api_key:
        return upload_events(result.events, settings, api_key)
    return 0


def cmd_upload(args: argparse.Namespace) -> int:
    """Upload a previously generated events file."""
    settings = get_settings()
    try:
        api_key = settings.require_api_key()
    except ConfigurationError as e:
        get_alert_manager().emit_failure(AlertType.RUN_FAILURE, "upload", str(e))
        print(f"Error: {e}")
        return 1

    input_path = Path(args.input)
    if not input_path.exists():
        print(f"Error: File not found: {input_path}")
        return 1

    events = load_events(input_path)
    return upload_events(events, settings, api_key)


def cmd_report(args: argparse.Namespace) -> int:
    """Print monthly statistics for an events file."""
    input_path = Path(args.input)
    if not input_path.exists():
        print(f"Error: File not found: {input_path}")
        return 1

    aggregator = EventAggregator(load_records(input_path))
    print(f"\nReport for: {input_path}")
    print("=" * 60)
    print(f"Events: {len(aggregator):,}")
    print()

    for stats in aggregator.monthly_summary():
        print(f"{stats.period}:")
        print(f"  Signups:          {stats.signups:>10,}")
        if stats.signup_growth_pct is not None:
            print(f"  Signup growth:    {stats.signup_growth_pct:>+9.1f}%")
        print(f"  Logins:           {stats.logins:>10,}")
        print(f"  Monthly actives:  {stats.monthly_active_users:>10,}")
        print(f"  Avg daily active: {stats.avg_daily_active_users:>10,.2f}")
        print(f"  Data generated:   {stats.data_generated:>10,} ({stats.total_gb:.2f} GB, {stats.words:,} words)")
        print(f"  Downloads:        {stats.downloads:>10,}")
        print(f"  Job failures:     {stats.job_failures:>10,}")
        print(f"  Tickets:          {stats.tickets_raised:>5} raised / {stats.tickets_resolved} resolved")
        print(f"  Countries:        {stats.unique_countries:>10,}")
        print()

    print(f"Average monthly signups: {aggregator.average_monthly_signups():,.2f}")
    print()

    for field in ("country", "acquisition_source"):
        top = aggregator.top_counts(field)
        if top:
            print(f"Top {field.replace('_', ' ')}:")
            for item in top:
                print(f"  {item.value:<24} {item.count:>6,}")
            print()

    return 0


def cmd_validate(args: argparse.Namespace) -> int:
    """Validate an events file against the generation invariants."""
    input_path = Path(args.input)
    if not input_path.exists():
        print(f"Error: File not found: {input_path}")
        return 1

    plan: Optional[Plan] = None
    if args.plan or args.preset:
        try:
            plan = resolve_plan(args.plan, args.preset)
        except PlanError as e:
            print(f"Error: {e}")
            return 1

    print(f"\nValidating events in: {input_path}")
    print("=" * 60)

    result = EventValidator(load_records(input_path), plan=plan).validate()

    print("Validation Results")
    print("-" * 40)
    print(f"Suite: {result.suite_name}")
    print(f"Passed: {result.successful_expectations}/{result.total_expectations}")

    if result.failures:
        print(f"\nErrors ({len(result.failures)}):")
        for failure in result.failures:
            print(f"  [ERROR] {failure['expectation']}: {failure['count']} problems")
            for example in failure["examples"]:
                print(f"          {example}")
    else:
        print("\nNo errors found!")

    print()
    return 0 if result.success else 1


def cmd_info(args: argparse.Namespace) -> int:
    """Display the built-in plan presets."""
    print("\nPlan Presets")
    print("============\n")

    for name in PRESETS:
        plan = get_preset(name)
        print(f"{name}:")
        for target in plan.periods:
            low, high = target.daily_active_range
            print(
                f"  {target.period}  signups {target.signup_count:>5,}  "
                f"DAU {low:>4}-{high:<4}  MAU {target.monthly_active_target:>5,}  "
                f"volume {target.volume_target_mb / 1024:>6.2f} GB  "
                f"tickets {target.tickets_raised}/{target.tickets_resolved}"
            )
        print()

    return 0


def add_plan_arguments(parser: argparse.ArgumentParser, default_preset: Optional[str]) -> None:
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--plan", type=str, help="Path to a JSON plan file")
    group.add_argument(
        "--preset",
        choices=list(PRESETS),
        default=default_preset,
        help=f"Built-in plan (default: {default_preset})",
    )


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Synthetic product telemetry generator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Generate the growth plan:
    python -m generators.cli generate --preset growth --seed 42

  Generate only users and tickets from a plan file:
    python -m generators.cli generate --plan ./plan.json --only users,tickets

  Generate and upload (needs POSTHOG_API_KEY):
    python -m generators.cli generate --preset launch --upload

  Show plan presets:
    python -m generators.cli info

  Validate generated data against its plan:
    python -m generators.cli validate --input ./data/generated/events.json --preset growth
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Generate command
    gen_parser = subparsers.add_parser("generate", help="Generate telemetry events")
    add_plan_arguments(gen_parser, default_preset="growth")
    gen_parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for reproducibility (default: GENERATION_SEED)",
    )
    gen_parser.add_argument(
        "--output-dir",
        type=str,
        default=None,
        help="Output directory for generated files (default: OUTPUT_DIR)",
    )
    gen_parser.add_argument(
        "--only",
        type=parse_stages,
        default=list(STAGES),
        help=f"Comma-separated stages to keep (default: {','.join(STAGES)})",
    )
    gen_parser.add_argument(
        "--upload",
        action="store_true",
        help="Upload the events to the ingestion sink after generating",
    )
    gen_parser.set_defaults(func=cmd_generate)

    # Upload command
    upload_parser = subparsers.add_parser("upload", help="Upload an events file")
    upload_parser.add_argument("--input", type=str, required=True, help="Events JSON file")
    upload_parser.set_defaults(func=cmd_upload)

    # Report command
    report_parser = subparsers.add_parser("report", help="Show monthly statistics")
    report_parser.add_argument("--input", type=str, required=True, help="Events JSON file")
    report_parser.set_defaults(func=cmd_report)

    # Validate command
    val_parser = subparsers.add_parser("validate", help="Validate an events file")
    val_parser.add_argument("--input", type=str, required=True, help="Events JSON file")
    add_plan_arguments(val_parser, default_preset=None)
    val_parser.set_defaults(func=cmd_validate)

    # Info command
    info_parser = subparsers.add_parser("info", help="Show plan presets")
    info_parser.set_defaults(func=cmd_info)

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    settings = get_settings()
    configure_logging(settings.LOG_LEVEL, json=settings.LOG_JSON)

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
