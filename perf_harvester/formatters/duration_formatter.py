"""
Duration formatting utilities for reports and log output.
"""


def round_duration(value: float, decimals: int) -> float:
    """
    Round a duration for export.

    Args:
        value: Duration in seconds
        decimals: Number of decimal places

    Returns:
        Rounded float (e.g. 6.0, 1.235)
    """
    return float(round(float(value), decimals))


def format_elapsed(seconds: float) -> str:
    """
    Format an elapsed wall-clock time for log lines.

    Args:
        seconds: Elapsed time in seconds

    Returns:
        Formatted string (e.g., "850.00 ms", "2.34 s", "1m 30.50s")
    """
    ms = seconds * 1000
    if ms < 1000:
        return f"{ms:.2f} ms"
    elif ms < 60000:
        return f"{ms/1000:.2f} s"
    else:
        minutes = int(ms / 60000)
        secs = (ms % 60000) / 1000
        return f"{minutes}m {secs:.2f}s"
