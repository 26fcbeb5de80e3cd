"""Message rendering for Telegram delivery.

Pure functions: every formatter takes plain data and returns a Markdown
string. Nothing here talks to the network.
"""

import re
from datetime import date
from typing import Iterable, Optional

from adayalert.analysis.open_interest import atm_strike
from adayalert.reports.morning import MorningReport
from adayalert.signals.strike_selector import StrikeSelection
from adayalert.strategy.models import (
    BUY_CALL,
    FAIL,
    NEUTRAL_STATUS,
    PASS,
    AggregatedSignal,
    DayClassification,
    Reason,
)

STATUS_EMOJI = {
    PASS: "✅",
    NEUTRAL_STATUS: "⚠️",
    FAIL: "❌",
}

_MARKDOWN_SPECIAL = re.compile(r"([\\_*\[\]()~`>#+=|{}.!-])")


def escape_markdown(text: Optional[str]) -> str:
    """Backslash-escape Telegram Markdown control characters."""
    if not text:
        return ""
    return _MARKDOWN_SPECIAL.sub(r"\\\1", str(text))


def group_reasons(reasons: Iterable[Reason]) -> list[Reason]:
    """Order reasons pass first, then neutral, then fail (stable within each)."""
    reasons = list(reasons)
    return (
        [r for r in reasons if r.status == PASS]
        + [r for r in reasons if r.status == NEUTRAL_STATUS]
        + [r for r in reasons if r.status == FAIL]
    )


def summary_line(reasons: list[Reason]) -> str:
    passing = sum(1 for r in reasons if r.status == PASS)
    return f"{passing}/{len(reasons)} factors aligned"


def compact_reason(reasons: list[Reason]) -> str:
    """Comma-joined passing factors, for log lines."""
    passing = [r.factor for r in reasons if r.status == PASS]
    return ", ".join(passing) or "No clear factors"


def confidence_bar(score: float) -> str:
    filled = max(0, min(10, round(score / 10)))
    return "█" * filled + "░" * (10 - filled)


def format_why_section(reasons: list[Reason], confidence_score: float) -> str:
    """The WHY block: grouped factors, then the confidence bar."""
    if not reasons:
        return "*No detailed analysis available*"

    lines = ["*📊 WHY THIS SIGNAL:*", ""]
    for reason in group_reasons(reasons):
        lines.append(f"{STATUS_EMOJI.get(reason.status, '•')} *{escape_markdown(reason.factor)}*")
        lines.append(f"    {escape_markdown(reason.detail)}")
    lines.append("")
    lines.append(f"*📈 Confidence: {escape_markdown(f'{confidence_score:g}')}/100*")
    lines.append(f"`{confidence_bar(confidence_score)}`")
    lines.append(escape_markdown(summary_line(reasons)))
    return "\n".join(lines)


def _points(value: Optional[float]) -> str:
    return f"{value:.0f}" if value is not None else "N/A"


def format_alert(
    signal: AggregatedSignal,
    lot_size: int = 25,
    premium_min: float = 80,
    premium_max: float = 150,
    force_mode: bool = False,
    symbol: str = "NIFTY",
    selection: Optional[StrikeSelection] = None,
) -> str:
    """Render an aggregated signal as a Telegram alert.

    With a strike *selection* the alert names that strike and its live
    premium; without one it falls back to the ATM strike and the premium band.
    """
    option = "CE" if signal.direction == BUY_CALL else "PE"
    if selection is not None:
        strike = f"{selection.strike:.0f}"
        premium = f"Rs {selection.premium:g}"
        if not selection.in_band:
            premium += f" (outside Rs {premium_min:g}-{premium_max:g})"
    else:
        strike = f"{atm_strike(signal.spot_price_hint):.0f}" if signal.spot_price_hint else None
        premium = f"Rs {premium_min:g}-{premium_max:g}"
    header = "🟢" if signal.direction == BUY_CALL else "🔴"
    underlying = symbol.split(" ")[0]

    lines = [
        f"{header} *{escape_markdown(underlying)} BUY {option}*",
        "",
        f"*Setup:* {escape_markdown(signal.primary_strategy)}",
        f"*Strike:* {escape_markdown(strike) if strike else 'TBD'} {option}",
        f"*Premium:* {escape_markdown(premium)}",
        f"*Lot Size:* {lot_size}",
        f"*Spot:* {escape_markdown(_points(signal.spot_price_hint))}",
        f"*Stop Loss:* {escape_markdown(_points(signal.stop_loss_hint))}",
        f"*Time:* {signal.timestamp.strftime('%H:%M')}",
    ]
    if len(signal.contributing_strategies) > 1:
        joined = ", ".join(signal.contributing_strategies)
        lines.append(f"*Confluence:* {escape_markdown(joined)}")
    if force_mode:
        lines.append("⚠️ *C\\-Day signal \\(force analyze mode\\)*")
    lines.append("")
    lines.append(format_why_section(signal.reasons, signal.confidence_score))
    lines.append("")
    lines.append("_Alert only, no order placed_")
    return "\n".join(lines)


def format_session_start(
    session_date: date,
    day: Optional[DayClassification],
    force_mode: bool = False,
) -> str:
    lines = [f"*🔔 Session start {escape_markdown(session_date.isoformat())}*", ""]
    if day is None:
        lines.append("❌ Day classification unavailable, no signals today")
        return "\n".join(lines)

    if day.is_trend_day:
        lines.append(f"✅ *A\\-Day* {day.direction}")
    else:
        lines.append("❌ *C\\-Day*")
    lines.append(escape_markdown(
        f"Body {day.body_ratio_pct:.1f}% | Range {day.range_points:.0f} pts | "
        f"Volume {day.volume_ratio_pct:.0f}% of avg"
    ))
    if day.degraded:
        lines.append(escape_markdown(
            f"⚠️ Only {day.history_days} days of volume history available"
        ))
    if not day.is_trend_day:
        lines.append(
            "Force analyze ON, detectors will run" if force_mode
            else "Detectors idle today"
        )
    return "\n".join(lines)


def format_session_report(report: dict) -> str:
    """End-of-session summary.

    Always lists what was sent and filtered. When present, also renders the
    session OHLC, reversals, per-strategy counts, next-day levels and outlook.
    """
    lines = [f"*📋 Session report {escape_markdown(str(report.get('date')))}*", ""]
    lines.append(f"Day type: {escape_markdown(str(report.get('day_type', 'N/A')))}")
    lines.append(f"Ticks evaluated: {report.get('ticks', 0)}")

    sent = report.get("signals_sent", [])
    lines.append("")
    lines.append(f"*Signals sent:* {len(sent)}")
    for item in sent:
        lines.append(escape_markdown(
            f"• {item['time']} {item['direction']} via {item['strategy']} "
            f"({item['confidence']:g}/100)"
        ))

    filtered = report.get("signals_filtered", [])
    if filtered:
        lines.append("")
        lines.append(f"*Filtered:* {len(filtered)}")
        for item in filtered:
            lines.append(escape_markdown(
                f"• {item['time']} {item['direction']} ({item['reason']})"
            ))

    session = report.get("session")
    if session is not None:
        lines.append("")
        lines.append(f"*Session:* {escape_markdown(report.get('session_type', 'N/A'))}")
        lines.append(escape_markdown(
            f"O {session.open:.0f} | H {session.high:.0f} | L {session.low:.0f} | "
            f"C {session.close:.0f} ({session.change:+.0f}, {session.change_pct:+.2f}%)"
        ))

    reversals = report.get("reversals")
    if reversals:
        lines.append("")
        lines.append(f"*Reversals:* {reversals['total']}")
        for item in reversals["reversals"]:
            lines.append(escape_markdown(
                f"• {item['time']} {item['kind'].replace('_', ' ').title()} ({item['magnitude']} pts)"
            ))

    performance = report.get("strategy_performance")
    if performance and performance["total_signals"]:
        lines.append("")
        lines.append("*Strategy performance:*")
        for name, entry in performance["by_strategy"].items():
            lines.append(escape_markdown(
                f"• {name}: {entry['count']} ({', '.join(entry['directions'])})"
            ))
        lines.append(escape_markdown(f"Avg confidence {performance['avg_confidence']:g}/100"))

    levels = report.get("tomorrow_levels")
    if levels is not None:
        lines.append("")
        lines.append("*Tomorrow's levels:*")
        lines.append(escape_markdown(
            f"R2 {levels.r2} | R1 {levels.r1} | P {levels.pivot} | S1 {levels.s1} | S2 {levels.s2}"
        ))
        lines.append(escape_markdown(f"PDH {levels.pdh:.0f} | PDL {levels.pdl:.0f} | PDC {levels.pdc:.0f}"))

    if report.get("outlook"):
        lines.append("")
        lines.append(f"*Outlook:* {escape_markdown(report['outlook'])}")
    return "\n".join(lines)


def format_morning_report(report: MorningReport) -> str:
    """Five-session recap, weekly tally and today's setup."""
    lines = ["*🌅 Morning report*", ""]
    for review in report.days:
        candle = review.candle
        lines.append(
            f"*{escape_markdown(review.session_date.strftime('%a %d %b'))}* "
            f"{escape_markdown(review.label)}"
        )
        lines.append(escape_markdown(
            f"C {candle.close:.0f} ({review.change:+.0f}, {review.change_pct:+.2f}%) "
            f"| Range {candle.range:.0f}"
        ))
        lines.append(escape_markdown(
            f"{review.gap_text} | {review.close_text} | {review.pattern_text}"
        ))

    weekly = report.weekly
    lines.append("")
    lines.append("*Week:*")
    lines.append(escape_markdown(
        f"A-Days {weekly.a_days} ({weekly.a_days_bullish} up, {weekly.a_days_bearish} down) "
        f"| C-Days {weekly.c_days} | Volatile {weekly.volatile} "
        f"| Consolidation {weekly.consolidation}"
    ))
    lines.append(escape_markdown(
        f"Net {weekly.net_change:+.0f} pts ({weekly.net_change_pct:+.2f}%) | Avg range {weekly.avg_range:.0f}"
    ))

    setup = report.setup
    lines.append("")
    lines.append("*Today:*")
    lines.append(escape_markdown(setup.expectation))
    lines.append(escape_markdown(f"Watch {setup.watch_levels}"))
    lines.append(escape_markdown(
        f"Pivot {setup.levels.pivot} | R1 {setup.levels.r1} | S1 {setup.levels.s1}"
    ))
    return "\n".join(lines)
