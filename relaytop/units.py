"""Human-readable formatting for byte counts, bit-rates and durations."""

from __future__ import annotations


def fmt_bytes(n: int | float) -> str:
    """Human-readable byte count (binary prefixes)."""
    v = float(n)
    if abs(v) < 1024:
        return f"{v:.0f} B"
    for unit in ("KiB", "MiB", "GiB", "TiB"):
        v /= 1024
        if abs(v) < 1024:
            return f"{v:.1f} {unit}"
    return f"{v / 1024:.1f} PiB"


def fmt_kbps(kbps: float) -> str:
    """Human-readable bit-rate from a kilobits/sec figure (decimal prefixes).

    Units switch on the displayed value, so 999.6 shows as ``1.0 Mb/s``.
    """
    if round(kbps) < 1000:
        return f"{kbps:.0f} kb/s"
    if round(kbps / 1000, 1) < 1000:
        return f"{kbps / 1000:.1f} Mb/s"
    return f"{kbps / 1000 ** 2:.1f} Gb/s"


def fmt_rate_limit(bytes_per_sec: int | None) -> str:
    if bytes_per_sec is None:
        return "unlimited"
    return f"{fmt_bytes(bytes_per_sec)}/s"


def fmt_duration(seconds: int | float) -> str:
    """Compact duration: ``3d 4h 05m``, ``4h 05m 09s``, ``5m 09s``, ``42s``."""
    total = max(0, int(seconds))
    days, rem = divmod(total, 86400)
    hours, rem = divmod(rem, 3600)
    minutes, secs = divmod(rem, 60)
    if days:
        return f"{days}d {hours}h {minutes:02d}m"
    if hours:
        return f"{hours}h {minutes:02d}m {secs:02d}s"
    if minutes:
        return f"{minutes}m {secs:02d}s"
    return f"{secs}s"
