from __future__ import annotations

import datetime as dt
from importlib import metadata
from pathlib import Path
from typing import Iterable

import matplotlib

matplotlib.use("Agg")  # headless, deterministic output
import matplotlib.dates as mdates
import matplotlib.path as mpath
import matplotlib.pyplot as plt
from matplotlib.patches import FancyArrowPatch, Patch, Polygon

from .project_models import ScheduleRow

CRITICAL_COLOR = "#d9480f"
NORMAL_COLOR = "#4c6ef5"
COMPLETED_COLOR = "#adb5bd"
FLOAT_ALPHA = 0.25
ROUTE_X_PAD = 0.25  # days between bar edge and connector start/end
ROUTE_CLEARANCE = 0.1
TIMELINE_PAD_DAYS = 2
ROW_HEIGHT = 0.6
TITLE_FONT = 14
LABEL_FONT = 10
TICK_FONT = 9
FOOTER_FONT = 8

Rect = tuple[float, float, float, float]  # (x_min, x_max, y_min, y_max)


def render_gantt(
    rows: list[ScheduleRow],
    out_path: str,
    title: str,
    min_date: dt.date | None = None,
    max_date: dt.date | None = None,
) -> None:
    """
    Render a static SVG schedule chart to `out_path`.

    - One bar per task from earliest start to earliest finish.
    - A translucent tail from earliest finish to latest finish shows float.
    - Critical tasks are drawn in the critical colour; zero-length tasks as lozenges.
    """

    if not rows:
        raise ValueError("rows must not be empty")

    min_date, max_date = _resolve_date_window(rows, min_date, max_date)
    span_days = (max_date - min_date).days + 1

    fig_height = max(3.0, ROW_HEIGHT * len(rows) + 2.0)
    fig_width = max(10.0, min(24.0, span_days / 7.0 * 2.0 + 6.0))
    fig = plt.figure(figsize=(fig_width, fig_height))
    gs = fig.add_gridspec(1, 2, width_ratios=[1.2, 4.0], wspace=0.05, left=0.04, right=0.98, top=0.85, bottom=0.1)
    label_ax = fig.add_subplot(gs[0, 0])
    ax = fig.add_subplot(gs[0, 1], sharey=label_ax)

    ax.set_ylim(-1, len(rows))
    ax.invert_yaxis()
    ax.set_xlim(
        mdates.date2num(min_date - dt.timedelta(days=TIMELINE_PAD_DAYS)),
        mdates.date2num(max_date + dt.timedelta(days=TIMELINE_PAD_DAYS)),
    )
    ax.xaxis_date()
    ax.xaxis.tick_top()
    major_locator, major_formatter = _major_tick_strategy(span_days)
    ax.xaxis.set_major_locator(major_locator)
    ax.xaxis.set_major_formatter(major_formatter)
    ax.grid(True, axis="x", which="major", linestyle="--", alpha=0.4)
    ax.tick_params(axis="x", labelrotation=30, labelsize=TICK_FONT, pad=4)
    ax.set_yticks([])

    label_ax.set_xlim(0, 1)
    label_ax.axis("off")

    fig.suptitle(title, x=0.5, fontsize=TITLE_FONT, y=0.985)
    fig.text(
        0.99,
        0.01,
        f"critical-path-scheduler v{_tool_version()}",
        ha="right",
        va="bottom",
        fontsize=FOOTER_FONT,
        alpha=0.8,
    )

    bar_rects: dict[str, Rect] = {}

    for idx, row in enumerate(rows):
        y = idx
        label = row.name if not row.assignee else f"{row.name} ({row.assignee})"
        label_ax.text(
            0.98,
            y,
            label,
            ha="right",
            va="center",
            fontsize=LABEL_FONT,
            fontweight="bold" if row.is_critical else "normal",
            transform=label_ax.transData,
        )

        color = _bar_color(row)
        start_num = mdates.date2num(row.earliest_start)
        finish_num = mdates.date2num(row.earliest_finish)
        late_num = mdates.date2num(row.latest_finish)

        if finish_num > start_num:
            ax.barh(
                y,
                width=finish_num - start_num,
                left=start_num,
                height=ROW_HEIGHT,
                color=color,
                edgecolor="black",
                linewidth=0.5,
            )
        else:
            half_width = 0.3
            half_height = ROW_HEIGHT / 1.5
            diamond = [
                (start_num - half_width, y),
                (start_num, y - half_height),
                (start_num + half_width, y),
                (start_num, y + half_height),
            ]
            ax.add_patch(Polygon(diamond, closed=True, facecolor=color, edgecolor="black"))

        if late_num > finish_num:
            ax.barh(
                y,
                width=late_num - finish_num,
                left=finish_num,
                height=ROW_HEIGHT / 2,
                color=color,
                alpha=FLOAT_ALPHA,
                hatch="//",
                linewidth=0,
            )

        bar_rects[row.node_id] = (start_num, max(finish_num, start_num), y - ROW_HEIGHT / 2, y + ROW_HEIGHT / 2)

    _draw_dependencies(ax, rows, bar_rects)

    ax.legend(
        handles=[
            Patch(facecolor=CRITICAL_COLOR, edgecolor="black", label="critical"),
            Patch(facecolor=NORMAL_COLOR, edgecolor="black", label="non-critical"),
            Patch(facecolor=NORMAL_COLOR, alpha=FLOAT_ALPHA, hatch="//", label="float"),
        ],
        loc="lower right",
        fontsize=TICK_FONT,
    )

    Path(out_path).parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(out_path, format="svg", bbox_inches="tight")
    plt.close(fig)


def _bar_color(row: ScheduleRow) -> str:
    if row.is_critical:
        return CRITICAL_COLOR
    if row.status == "completed":
        return COMPLETED_COLOR
    return NORMAL_COLOR


def _resolve_date_window(
    rows: Iterable[ScheduleRow], min_date: dt.date | None, max_date: dt.date | None
) -> tuple[dt.date, dt.date]:
    starts: list[dt.date] = []
    finishes: list[dt.date] = []
    for row in rows:
        starts.append(row.earliest_start)
        finishes.append(row.latest_finish)
    computed_min = min_date or min(starts)
    computed_max = max_date or max(finishes + starts)
    return computed_min, computed_max


def _tool_version() -> str:
    try:
        return metadata.version("critical-path-scheduler")
    except metadata.PackageNotFoundError:
        return "0.0.0"


def _major_tick_strategy(span_days: int) -> tuple[mdates.DateLocator, mdates.DateFormatter]:
    """Choose a major tick locator/formatter to avoid overlapping labels."""
    if span_days > 180:
        return mdates.MonthLocator(interval=1), mdates.DateFormatter("%b %Y")
    if span_days > 90:
        return mdates.WeekdayLocator(byweekday=mdates.MO, interval=2), mdates.DateFormatter("%b %d")
    if span_days > 45:
        return mdates.WeekdayLocator(byweekday=mdates.MO, interval=1), mdates.DateFormatter("%b %d")
    return mdates.DayLocator(interval=2), mdates.DateFormatter("%b %d")


def segment_intersects_rect(seg: tuple[tuple[float, float], tuple[float, float]], rect: Rect) -> bool:
    """Return True if an orthogonal segment touches or crosses the rectangle."""
    (x1, y1), (x2, y2) = seg
    xmin, xmax, ymin, ymax = rect
    if y1 == y2:
        if not (ymin <= y1 <= ymax):
            return False
        x_low, x_high = sorted((x1, x2))
        return not (x_high < xmin or x_low > xmax)
    if x1 == x2:
        if not (xmin <= x1 <= xmax):
            return False
        y_low, y_high = sorted((y1, y2))
        return not (y_high < ymin or y_low > ymax)
    # Diagonal segments only come from bevelling and are never checked.
    return True


def polyline_clear(points: list[tuple[float, float]], rects: Iterable[Rect], clearance: float) -> bool:
    """Check that no segment of an orthogonal polyline hits any inflated rectangle."""
    inflated = [(x0 - clearance, x1 + clearance, y0 - clearance, y1 + clearance) for x0, x1, y0, y1 in rects]
    for i in range(len(points) - 1):
        seg = (points[i], points[i + 1])
        for rect in inflated:
            if segment_intersects_rect(seg, rect):
                return False
    return True


def route_dependency(a_rect: Rect, b_rect: Rect, others: Iterable[Rect]) -> list[tuple[float, float]]:
    """
    Route a connector from the right face of `a_rect` to the left face of `b_rect`.

    Tries right-vertical-right first, then a detour that drops between the two
    rows and approaches the successor from its left.
    """

    axmin, axmax, aymin, aymax = a_rect
    bxmin, bxmax, bymin, bymax = b_rect
    start = (axmax + ROUTE_X_PAD, (aymin + aymax) / 2)
    goal = (bxmin - ROUTE_X_PAD, (bymin + bymax) / 2)

    if goal[0] >= start[0]:
        x_lane = (start[0] + goal[0]) / 2
        simple = [start, (x_lane, start[1]), (x_lane, goal[1]), goal]
        if polyline_clear(simple, others, ROUTE_CLEARANCE):
            return simple

    y_mid = (aymax + bymin) / 2 if bymin >= aymax else (start[1] + goal[1]) / 2
    x_out = start[0] + ROUTE_X_PAD
    x_in = goal[0] - ROUTE_X_PAD
    return [start, (x_out, start[1]), (x_out, y_mid), (x_in, y_mid), (x_in, goal[1]), goal]


def _bevel_polyline(points: list[tuple[float, float]], bevel: float = 0.3) -> list[tuple[float, float]]:
    """Cut each elbow with a short diagonal so connectors read as one line."""
    if len(points) < 3:
        return points

    beveled: list[tuple[float, float]] = [points[0]]
    for i in range(1, len(points) - 1):
        prev_pt, corner, next_pt = points[i - 1], points[i], points[i + 1]
        vx1, vy1 = corner[0] - prev_pt[0], corner[1] - prev_pt[1]
        vx2, vy2 = next_pt[0] - corner[0], next_pt[1] - corner[1]
        len1 = (vx1**2 + vy1**2) ** 0.5
        len2 = (vx2**2 + vy2**2) ** 0.5
        if len1:
            trim = min(bevel, len1 / 2)
            beveled.append((corner[0] - vx1 / len1 * trim, corner[1] - vy1 / len1 * trim))
        if len2:
            trim = min(bevel, len2 / 2)
            beveled.append((corner[0] + vx2 / len2 * trim, corner[1] + vy2 / len2 * trim))
        if not len1 and not len2:
            beveled.append(corner)
    beveled.append(points[-1])
    return beveled


def _draw_dependencies(ax: plt.Axes, rows: list[ScheduleRow], bar_rects: dict[str, Rect]) -> None:
    critical = {row.node_id for row in rows if row.is_critical}
    for row in rows:
        b_rect = bar_rects.get(row.node_id)
        if b_rect is None:
            continue
        for dep_id in row.depends_on:
            a_rect = bar_rects.get(dep_id)
            if a_rect is None:
                continue
            others = [rect for key, rect in bar_rects.items() if key not in (dep_id, row.node_id)]
            polyline = _bevel_polyline(route_dependency(a_rect, b_rect, others))
            codes = [mpath.Path.MOVETO] + [mpath.Path.LINETO] * (len(polyline) - 1)
            on_path = dep_id in critical and row.node_id in critical
            ax.add_patch(
                FancyArrowPatch(
                    path=mpath.Path(polyline, codes),
                    arrowstyle="-|>",
                    mutation_scale=8.0,
                    lw=1.4 if on_path else 0.9,
                    color=CRITICAL_COLOR if on_path else "#3a3a3a",
                    shrinkA=0.5,
                    shrinkB=0.5,
                )
            )
