r"""Nonlinear (SPM) phase <-> launch power dimensioning for amplified links.

Closed-form helper used to pre-dimension link power before running a full
propagation simulation. Given a target cumulated self-phase-modulation (SPM)
rotation :math:`\phi_{NL}` over the whole link, return the launch power that
produces it:

.. math::
    \phi_{NL} = P \, n_{span} \sum_k L_{eff,k}\,\gamma_k\,G_k

with

- :math:`L_{eff,k} = (1 - e^{-\alpha_k L_k}) / \alpha_k` (``L_k`` when lossless)
- :math:`G_k` the cumulative linear gain from the launch point to the input of
  fiber ``k``.

Link layout (one of the ``nspan`` periods)::

    ampli0 --- fiber 0 --- ampli1 --- fiber 1 --- ampli2 (= ampli0) ...
    G[0]       L[0],a[0]   G[1]       L[1],a[1]

``G[k]`` is the *net* gain of amplifier ``k``. The loss of the fiber that
precedes amplifier ``k`` is folded into stage ``k``, not into stage ``k-1``.

Scope note
----------
This is **not** a propagation solver: no dispersion, no higher-order
nonlinearity, no noise.
"""

from __future__ import annotations

import math
from typing import Optional, Sequence, Union

import numpy as np

from simul_report import ReportSink, append_report, format_phi2pow_report


ArrayLike = Union[float, Sequence[float], np.ndarray]

# dB/km -> 1/m (natural log): ln(10)/10 per dB, /1000 per km
DB_PER_KM_TO_NEPER_PER_M = math.log(10) * 1e-4


class ValidationError(ValueError):
    """Raised when span parameter sequences are inconsistent."""


def _as_1d(x: ArrayLike) -> np.ndarray:
    # 1xN and Nx1 inputs collapse to N fibers; a real matrix is ambiguous
    arr = np.atleast_1d(np.squeeze(np.asarray(x, dtype=float)))
    if arr.ndim != 1:
        msg = f"Fiber parameters must be 1-D sequences, got shape {np.shape(x)}"
        raise ValidationError(msg)
    return arr


def span_parameters(
    length_m: ArrayLike,
    alpha_db_per_km: ArrayLike,
    gamma: ArrayLike,
    net_gain_db: ArrayLike,
) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """Return the four span sequences as float arrays of identical length.

    Scalars count as length-1 sequences. Values are not range-checked: zero or
    negative lengths, attenuations and gammas go straight into the formula.
    """

    arrays = tuple(_as_1d(x) for x in (length_m, alpha_db_per_km, gamma, net_gain_db))
    if len({a.size for a in arrays}) != 1:
        msg = "All fiber parameters must be of the same length"
        raise ValidationError(msg)
    if arrays[0].size == 0:
        msg = "At least one fiber is required"
        raise ValidationError(msg)
    return arrays  # type: ignore[return-value]


def alpha_db_to_linear(alpha_db_per_km: ArrayLike) -> np.ndarray:
    """Attenuation in dB/km -> power attenuation coefficient in 1/m."""

    return DB_PER_KM_TO_NEPER_PER_M * _as_1d(alpha_db_per_km)


def effective_length_m(length_m: ArrayLike, alpha_db_per_km: ArrayLike) -> np.ndarray:
    """Per-fiber effective nonlinear length in meters.

    Lossless fibers (``alpha == 0``) take the limit ``Leff = L``.
    """

    length = _as_1d(length_m)
    alpha_lin = alpha_db_to_linear(alpha_db_per_km)

    leff = length.copy()
    lossy = alpha_lin != 0
    leff[lossy] = (1.0 - np.exp(-alpha_lin[lossy] * length[lossy])) / alpha_lin[lossy]
    return leff


def span_loss_db(length_m: ArrayLike, alpha_db_per_km: ArrayLike) -> np.ndarray:
    """Fiber loss in dB (negative for an attenuating fiber)."""

    return -_as_1d(alpha_db_per_km) * _as_1d(length_m) * 1e-3


def cumulative_gain(
    length_m: ArrayLike,
    alpha_db_per_km: ArrayLike,
    net_gain_db: ArrayLike,
) -> np.ndarray:
    """Linear power multiplier from the launch point to the input of each fiber.

    ``netgain[k] = loss[k-1] + G[k]`` (``netgain[0] = G[0]``): amplifier ``k``
    sees the loss of the fiber right before it.
    """

    gain_db = _as_1d(net_gain_db)
    loss = span_loss_db(length_m, alpha_db_per_km)

    netgain = gain_db.copy()
    netgain[1:] += loss[:-1]
    return 10.0 ** (0.1 * np.cumsum(netgain))


def phi_to_power_mw(
    phi: float,
    length_m: ArrayLike,
    alpha_db_per_km: ArrayLike,
    gamma: ArrayLike,
    net_gain_db: ArrayLike,
    nspan: float = 1,
    *,
    report: Optional[ReportSink] = None,
) -> float:
    """Transmit power [mW] that yields a cumulated SPM phase ``phi`` [rad].

    Parameters
    ----------
    phi:
        Target cumulated nonlinear phase in radians. Either sign is allowed;
        the result is linear in ``phi``.
    length_m:
        Fiber lengths [m], one per fiber of the period.
    alpha_db_per_km:
        Fiber attenuations [dB/km].
    gamma:
        Fiber nonlinear coefficients [1/W/m].
    net_gain_db:
        Net gain [dB] of the amplifier *preceding* each fiber. Use ``G[0]=0``
        when the transmitter is connected directly to the link.
    nspan:
        Number of repetitions of the period. With a single fiber this is a
        transparent link of ``nspan`` identical spans.
    report:
        Optional sink for the ``simul_out`` summary. Ignored unless enabled.

    Returns
    -------
    float
        Power entering ``ampli0``, in mW. A zero denominator (e.g. all gammas
        zero) returns ``inf``/``nan`` as IEEE arithmetic gives it.

    Raises
    ------
    ValidationError
        If the span sequences do not share the same length, are empty, or are
        not 1-D (1xN and Nx1 row/column vectors are accepted).
    """

    length, alpha, gam, gain = span_parameters(length_m, alpha_db_per_km, gamma, net_gain_db)

    leff = effective_length_m(length, alpha)
    cumgain = cumulative_gain(length, alpha, gain)
    weighted = np.sum(leff * gam * cumgain) * nspan

    with np.errstate(divide="ignore", invalid="ignore"):
        power_mw = float(np.float64(phi) / weighted * 1e3)

    if report is not None and report.enabled:
        text = format_phi2pow_report(
            phi=phi,
            power_mw=power_mw,
            length_m=length,
            alpha_db_per_km=alpha,
            gamma=gam,
            net_gain_db=gain,
            nspan=nspan,
        )
        append_report(report, text)

    return power_mw
