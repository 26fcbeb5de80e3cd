"""CLI dashboard — prints engine status and simulation outcomes to the console."""


def print_status(status: dict) -> str:
    """Format and print the current engine status.

    Args:
        status: Dict returned by ``AlertEngine.status()``.

    Returns:
        The formatted string (also printed to stdout).
    """
    day = status.get("day")
    safety = status.get("safety") or {}

    if day is None:
        day_str = "N/A"
    elif day.get("is_trend_day"):
        day_str = f"A-DAY {day.get('direction')}"
    else:
        day_str = "C-DAY"
    if day and day.get("degraded"):
        day_str += " (degraded history)"

    sent = safety.get("signals_sent", {})
    lines = [
        "──────────────── A-Day Alert Status ────────────────",
        f"  Symbol:          {status.get('symbol', 'N/A')}",
        f"  Running:         {status.get('running', False)}",
        f"  Market Open:     {status.get('market_open', False)}",
        f"  Session:         {status.get('session_date') or 'N/A'}",
        f"  Day Type:        {day_str}",
        f"  Force Analyze:   {'ON' if status.get('force_analyze') else 'off'}",
        f"  CALL Sent:       {sent.get('BUY_CALL', False)}",
        f"  PUT Sent:        {sent.get('BUY_PUT', False)}",
        f"  Safety:          {safety.get('state', 'N/A')}",
        f"  Session Loss:    {safety.get('cumulative_loss', 0.0):,.0f}",
        "────────────────────────────────────────────────────",
    ]
    output = "\n".join(lines)
    print(output)
    return output


def print_simulation(result) -> str:
    """Format and print a ``SimulationResult``."""
    day = result.day
    if day is None:
        day_str = "unavailable"
    elif day.is_trend_day:
        day_str = f"A-DAY {day.direction}"
    else:
        day_str = "C-DAY"

    lines = [
        f"──────────────── Simulation {result.session_date} ────────────────",
        f"  Day Type:        {day_str}",
        f"  Ticks:           {len(result.actions)}",
        f"  Alerts:          {result.signal_count}",
    ]
    for action, count in sorted(result.action_counts().items()):
        lines.append(f"    {action:<14} {count}")
    for alert in result.alerts:
        lines.append(
            f"  {alert['time']}  {alert['direction']:<8}  {alert['strategy']:<22}"
            f"  {alert['confidence']:g}/100"
        )
    report = result.report or {}
    if report.get("reversals"):
        lines.append(f"  Reversals:       {report['reversals']['total']}")
    if report.get("outlook"):
        lines.append(f"  Outlook:         {report['outlook']}")
    lines.append("─" * 60)
    output = "\n".join(lines)
    print(output)
    return output
