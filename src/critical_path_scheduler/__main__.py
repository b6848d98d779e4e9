from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

import yaml

from .parse_project import load_project
from .project_models import ProjectSnapshot
from .render_gantt import render_gantt
from .render_rows import to_render_rows
from .report import ProjectReport, build_project_report
from .resources import ResourceThresholds
from .scheduling import ProjectValidationError

logger = logging.getLogger("critical_path_scheduler")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="critical_path_scheduler",
        description="Critical path scheduler",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("project", help="Path to project snapshot YAML")
    parser.add_argument("--format", choices=("text", "json"), default="text", help="Report output format")
    parser.add_argument("--chart", help="Also render an SVG schedule chart to this path")
    parser.add_argument(
        "--critical-tasks",
        type=int,
        default=ResourceThresholds.critical_tasks,
        help="Critical task count per assignee that triggers a recommendation",
    )
    parser.add_argument(
        "--timeline-share",
        type=float,
        default=ResourceThresholds.timeline_share,
        help="Share of the project duration one assignee may carry before a recommendation",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        help="Logging verbosity on stderr",
    )
    return parser


def _format_text(report: ProjectReport) -> str:
    result = report.schedule
    lines = [
        f"Project: {report.snapshot.name}",
        f"Start: {report.snapshot.start_date.isoformat()}",
        f"Estimated end: {report.estimated_end_date.isoformat()} ({result.project_duration} days)",
        f"Health: {report.health}",
        "",
        f"{'task':<20} {'ES':>4} {'EF':>4} {'LS':>4} {'LF':>4} {'float':>5}  critical",
    ]
    for node in result.nodes:
        lines.append(
            f"{node.id:<20} {node.earliest_start:>4} {node.earliest_finish:>4} "
            f"{node.latest_start:>4} {node.latest_finish:>4} {node.float:>5}  {'yes' if node.is_critical else ''}"
        )
    lines.append("")
    lines.append("Critical path: " + (" -> ".join(result.critical_path) or "(none)"))

    if report.resources.recommendations:
        lines.append("")
        lines.append("Recommendations:")
        lines.extend(f"  - {text}" for text in report.resources.recommendations)

    if result.diagnostics:
        lines.append("")
        lines.append("Diagnostics:")
        lines.extend(f"  - [{diag.kind}] {diag.message}" for diag in result.diagnostics)
    return "\n".join(lines)


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=args.log_level, format="%(levelname)s %(name)s: %(message)s", stream=sys.stderr)
    project_path = Path(args.project)

    try:
        snapshot: ProjectSnapshot = load_project(str(project_path))
    except (yaml.YAMLError, ProjectValidationError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2
    except FileNotFoundError:
        print(f"Error: project file not found: {project_path}", file=sys.stderr)
        return 1
    except Exception as exc:  # Unexpected
        print(f"Unexpected error while loading project: {exc}", file=sys.stderr)
        return 1

    thresholds = ResourceThresholds(critical_tasks=args.critical_tasks, timeline_share=args.timeline_share)
    try:
        report = build_project_report(snapshot, thresholds)
    except ProjectValidationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2
    except Exception as exc:
        print(f"Unexpected error while scheduling: {exc}", file=sys.stderr)
        return 1

    if args.format == "json":
        print(json.dumps(report.as_dict(), indent=2))
    else:
        print(_format_text(report))

    if args.chart:
        rows = to_render_rows(report.schedule, snapshot.start_date)
        if not rows:
            print("Error: nothing was scheduled, no chart to render", file=sys.stderr)
            return 2
        try:
            render_gantt(rows=rows, out_path=args.chart, title=snapshot.name)
        except OSError as exc:
            print(f"Error: could not write chart: {exc}", file=sys.stderr)
            return 1
        except Exception as exc:
            print(f"Unexpected error while rendering: {exc}", file=sys.stderr)
            return 1
        logger.info("Wrote schedule chart to %s", args.chart)

    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
