"""Human-readable formatting helpers for analytics output."""


def format_data_volume(total_bytes: int) -> str:
    """Decimal-scaled volume string used by the dashboard.

    >>> format_data_volume(2_500_000)
    '2.50 MB'
    """
    if total_bytes > 1e9:
        return f"{total_bytes / 1e9:.2f} GB"
    if total_bytes > 1e6:
        return f"{total_bytes / 1e6:.2f} MB"
    if total_bytes > 1e3:
        return f"{total_bytes / 1e3:.2f} KB"
    return f"{total_bytes} B"


def format_data_size(total_bytes: int) -> str:
    """Binary-scaled size string (1 KB = 1024 B), trailing zeros dropped."""
    if total_bytes <= 0:
        return "0 B"
    units = ["B", "KB", "MB", "GB", "TB"]
    exponent = 0
    while total_bytes >= 1024 ** (exponent + 1) and exponent < len(units) - 1:
        exponent += 1
    value = round(total_bytes / 1024 ** exponent, 2)
    return f"{value:g} {units[exponent]}"


def format_duration(duration_ms: int) -> str:
    """'1h 2m 3s', '2m 3s' or '3s'."""
    total_seconds = max(duration_ms, 0) // 1000
    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    if hours:
        return f"{hours}h {minutes}m {seconds}s"
    if minutes:
        return f"{minutes}m {seconds}s"
    return f"{seconds}s"
