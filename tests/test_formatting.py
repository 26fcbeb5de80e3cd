"""Tests for Telegram message rendering."""

from datetime import date

from adayalert.delivery.formatting import (
    compact_reason,
    confidence_bar,
    escape_markdown,
    format_alert,
    format_morning_report,
    format_session_report,
    format_session_start,
    format_why_section,
    group_reasons,
    summary_line,
)
from adayalert.market.calendar import at
from adayalert.market.models import Candle
from adayalert.reports.morning import build_morning_report
from adayalert.reports.post_market import summarize_session, tomorrow_levels
from adayalert.signals.strike_selector import StrikeSelection
from adayalert.strategy.models import (
    BEARISH,
    BUY_CALL,
    BUY_PUT,
    FAIL,
    NEUTRAL_STATUS,
    PASS,
    AggregatedSignal,
    DayClassification,
    Reason,
)

DAY = date(2024, 1, 3)

REASONS = [
    Reason("Volume", FAIL, "Low volume"),
    Reason("ORB Breakout", PASS, "Close 18160 above range high"),
    Reason("Option Greeks", NEUTRAL_STATUS, "Greeks not analysed"),
    Reason("A-Day Alignment", PASS, "Aligns with BULLISH A-Day"),
]


def _signal(direction=BUY_CALL, contributing=None) -> AggregatedSignal:
    return AggregatedSignal(
        direction=direction,
        primary_strategy="ORB BREAKOUT",
        contributing_strategies=contributing or ["ORB BREAKOUT"],
        confidence_score=72,
        confidence_breakdown={},
        reasons=REASONS,
        spot_price_hint=18162.4,
        stop_loss_hint=18100,
        timestamp=at(DAY, 9, 45),
    )


class TestWhySection:
    def test_grouped_pass_neutral_fail(self):
        ordered = group_reasons(REASONS)
        assert [r.status for r in ordered] == [PASS, PASS, NEUTRAL_STATUS, FAIL]
        assert ordered[0].factor == "ORB Breakout"

    def test_summary_and_compact(self):
        assert summary_line(REASONS) == "2/4 factors aligned"
        assert compact_reason(REASONS) == "ORB Breakout, A-Day Alignment"
        assert compact_reason([]) == "No clear factors"

    def test_confidence_bar(self):
        assert confidence_bar(72) == "███████░░░"
        assert confidence_bar(100) == "█" * 10

    def test_section_contents(self):
        text = format_why_section(REASONS, 72)
        assert "WHY THIS SIGNAL" in text
        assert "72/100" in text
        assert text.index("ORB Breakout") < text.index("Option Greeks") < text.index("Volume")
        assert "2/4 factors aligned" in text

    def test_empty_reasons(self):
        assert "No detailed analysis" in format_why_section([], 0)


class TestEscape:
    def test_special_characters(self):
        assert escape_markdown("A-Day (1.5x)") == "A\\-Day \\(1\\.5x\\)"
        assert escape_markdown(None) == ""

    def test_backslash_is_escaped(self):
        assert escape_markdown("C:\\logs") == "C:\\\\logs"
        assert escape_markdown("\\.") == "\\\\\\."


class TestAlert:
    def test_call_alert(self):
        text = format_alert(_signal(), lot_size=25, premium_min=80, premium_max=150)
        assert "BUY CE" in text
        assert "18150 CE" in text
        assert "Rs 80\\-150" in text
        assert "*Lot Size:* 25" in text
        assert "*Stop Loss:* 18100" in text
        assert "09:45" in text
        assert "no order placed" in text

    def test_put_alert_with_confluence_and_force_tag(self):
        text = format_alert(
            _signal(BUY_PUT, ["ORB BREAKOUT", "S/R BREAKOUT"]), force_mode=True,
        )
        assert "BUY PE" in text
        assert "Confluence" in text
        assert "S/R BREAKOUT" in text
        assert "C\\-Day" in text

    def test_selected_strike_and_live_premium(self):
        selection = StrikeSelection(18200, "CE", 96.5, 37.6)
        text = format_alert(_signal(), selection=selection)
        assert "*Strike:* 18200 CE" in text
        assert "*Premium:* Rs 96\\.5" in text

    def test_premium_outside_band_is_flagged(self):
        selection = StrikeSelection(18300, "CE", 40, 137.6, in_band=False)
        text = format_alert(_signal(), premium_min=80, premium_max=150, selection=selection)
        assert "Rs 40 \\(outside Rs 80\\-150\\)" in text


class TestSessionMessages:
    def test_session_start_aday(self):
        day = DayClassification(True, BEARISH, 82.4, 170, 150)
        text = format_session_start(DAY, day)
        assert "A\\-Day" in text
        assert BEARISH in text

    def test_session_start_cday_force(self):
        day = DayClassification(False, None, 30, 80, 90, history_days=4, degraded=True)
        text = format_session_start(DAY, day, force_mode=True)
        assert "C\\-Day" in text
        assert "Force analyze ON" in text
        assert "4 days of volume history" in text

    def test_session_start_unavailable(self):
        assert "unavailable" in format_session_start(DAY, None)

    def test_session_report(self):
        report = {
            "date": "2024-01-03",
            "day_type": "A-DAY BULLISH",
            "ticks": 375,
            "signals_sent": [
                {"time": "09:45", "direction": BUY_CALL, "strategy": "ORB BREAKOUT", "confidence": 72},
            ],
            "signals_filtered": [
                {"time": "10:02", "direction": BUY_CALL, "reason": "Signal already sent for BUY_CALL"},
            ],
        }
        text = format_session_report(report)
        assert "Signals sent:* 1" in text
        assert "Filtered:* 1" in text
        assert "ORB BREAKOUT" in text

    def test_session_report_with_post_market_sections(self):
        session = summarize_session(
            [Candle(at(DAY, 9, 15), 18000, 18150, 17950, 18100, 500)], prev_close=18000,
        )
        report = {
            "date": "2024-01-03",
            "day_type": "A-DAY BULLISH",
            "ticks": 375,
            "signals_sent": [
                {"time": "09:45", "direction": BUY_CALL, "strategy": "ORB BREAKOUT", "confidence": 72},
            ],
            "signals_filtered": [],
            "session": session,
            "session_type": "C-DAY",
            "reversals": {
                "total": 1,
                "reversals": [{"kind": "BEARISH_REVERSAL", "magnitude": 45, "time": "11:20"}],
            },
            "strategy_performance": {
                "total_signals": 1,
                "by_strategy": {"ORB BREAKOUT": {"count": 1, "directions": [BUY_CALL]}},
                "avg_confidence": 72,
            },
            "tomorrow_levels": tomorrow_levels(session),
            "outlook": "Regular trading day, no strong trend established.",
        }
        text = format_session_report(report)
        assert "*Session:* C\\-DAY" in text
        assert "C 18100 \\(\\+100, \\+0\\.56%\\)" in text
        assert "11:20 Bearish Reversal \\(45 pts\\)" in text
        assert "ORB BREAKOUT: 1 \\(BUY\\_CALL\\)" in text
        assert "R2 18267" in text
        assert "*Outlook:* Regular trading day" in text

    def test_morning_report(self):
        candles = [
            Candle(at(date(2024, 1, 1), 9, 15), 18000, 18050, 17950, 18000, 1000),
            Candle(at(date(2024, 1, 2), 9, 15), 18000, 18160, 17990, 18150, 1000),
        ]
        text = format_morning_report(build_morning_report(candles, DAY))
        assert "Morning report" in text
        assert "Tue 02 Jan" in text
        assert "A\\-DAY \\(BULLISH\\)" in text
        assert "Follow\\-through in bullish direction expected" in text
        assert "Watch PDH 18160 for breakout" in text
