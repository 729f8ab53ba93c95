"""Plain-text ``simul_out`` summaries.

Kernels never decide on their own whether to write diagnostics. Callers pass
a :class:`ReportSink`; when it is disabled nothing touches the filesystem,
not even a check that the destination exists.

The report is append-only: every call adds one block at the end of the file
and leaves previous blocks untouched. There is no locking, so concurrent
writers to the same file must be serialized by the caller.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence


REPORT_FILENAME = "simul_out"

_BANNER = "=" * 40
_CLOSING = "*" * 40


@dataclass(frozen=True)
class ReportSink:
    """Where (and whether) to append a text summary.

    Parameters
    ----------
    enabled:
        Master switch. ``False`` means no file I/O of any kind.
    path:
        Destination file, opened in append mode. Only used when enabled.
    """

    enabled: bool = False
    path: Optional[Path] = None

    @classmethod
    def in_directory(cls, out_dir: Path, enabled: bool = True) -> "ReportSink":
        """Sink writing ``<out_dir>/simul_out``."""

        return cls(enabled=enabled, path=Path(out_dir) / REPORT_FILENAME)


def _format_nspan(nspan: float) -> str:
    # integral counts print in full, like %d
    if float(nspan).is_integer():
        return f"{int(nspan):d}"
    return repr(float(nspan))


def _span_row(length_m: float, alpha_db_per_km: float, gamma: float, gain_db: float) -> str:
    return f"{length_m:<12.6g}{alpha_db_per_km:<15.2f}{gamma:<17.2e}{gain_db:<15.2f}"


def format_phi2pow_report(
    *,
    phi: float,
    power_mw: float,
    length_m: Sequence[float],
    alpha_db_per_km: Sequence[float],
    gamma: Sequence[float],
    net_gain_db: Sequence[float],
    nspan: float,
) -> str:
    """Summary block for a phase -> power conversion."""

    lines = [
        _BANNER,
        "===            phi2pow               ===",
        _BANNER,
        "",
        "Nonlinear Phase converted into power. Optical system used:",
        "",
        "Length [m]  Alpha [dB/km]  Gamma [1/mW/km]  Gain [dB]",
        "",
    ]
    for row in zip(length_m, alpha_db_per_km, gamma, net_gain_db):
        lines.append(_span_row(*(float(v) for v in row)))

    single = all(len(x) == 1 for x in (length_m, alpha_db_per_km, gamma, net_gain_db))
    if single:
        lines += ["", f"NL Phase cumulated into {_format_nspan(nspan)} equal spans"]

    lines += [
        "",
        f"NL Phase: {phi / math.pi:.3f}*pi [rad] -> Tx power: {power_mw:.4g}  [mW]",
        "",
        _CLOSING,
        "",
    ]
    return "\n".join(lines) + "\n"


def append_report(sink: ReportSink, text: str) -> Optional[Path]:
    """Append ``text`` to the sink's file.

    Returns the path written, or ``None`` when the sink is disabled. I/O
    errors propagate.
    """

    if not sink.enabled:
        return None
    if sink.path is None:
        msg = "ReportSink is enabled but has no path"
        raise ValueError(msg)

    path = Path(sink.path)
    with path.open("a", encoding="utf-8") as f:
        f.write(text)
    return path
