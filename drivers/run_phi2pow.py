from __future__ import annotations

import argparse
import math
import os
import subprocess
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

# Allow running without packaging
REPO_ROOT = Path(__file__).resolve().parents[1]
import sys
sys.path.insert(0, str(REPO_ROOT / "src"))

from nonlinear_phase import phi_to_power_mw  # noqa: E402
from simul_report import ReportSink  # noqa: E402


REQUIRED_KEYS = ("length_m", "alpha_db_per_km", "gamma_per_w_per_m")


def _load_config(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _try_git_commit(repo_root: Path) -> Optional[str]:
    try:
        out = subprocess.check_output(
            ["git", "rev-parse", "HEAD"],
            cwd=str(repo_root),
            stderr=subprocess.STDOUT,
            text=True,
        ).strip()
        return out or None
    except Exception:
        return None


def _phi_rad(cfg: Dict[str, Any]) -> float:
    """Target phase from either ``phi_rad`` or ``phi_over_pi`` (exactly one)."""
    has_rad = cfg.get("phi_rad") is not None
    has_over_pi = cfg.get("phi_over_pi") is not None
    if has_rad == has_over_pi:
        raise ValueError("config must set exactly one of: phi_rad, phi_over_pi")
    if has_rad:
        return float(cfg["phi_rad"])
    return float(cfg["phi_over_pi"]) * math.pi


def _output_dir(cfg: Dict[str, Any], config_path: Path) -> Path:
    out = cfg.get("output_dir")
    if not out:
        return config_path.parent
    out_dir = Path(out).expanduser()
    if not out_dir.is_absolute():
        out_dir = config_path.parent / out_dir
    return out_dir.resolve()


def run_phi2pow(config_path: Path) -> Dict[str, Any]:
    """Compute the launch power described by a YAML link config.

    Returns the manifest dict (also written next to the report).
    """
    cfg = _load_config(config_path)
    for key in REQUIRED_KEYS:
        if cfg.get(key) is None:
            raise ValueError(f"config missing required key: {key}")

    phi = _phi_rad(cfg)
    n_fibers = len(cfg["length_m"]) if isinstance(cfg["length_m"], list) else 1
    net_gain_db = cfg.get("net_gain_db")
    if net_gain_db is None:
        net_gain_db = [0.0] * n_fibers
    nspan = cfg.get("nspan", 1)
    out_dir = _output_dir(cfg, config_path)

    report = ReportSink(enabled=False)
    if bool(cfg.get("print_report", False)):
        out_dir.mkdir(parents=True, exist_ok=True)
        report = ReportSink.in_directory(out_dir)

    power_mw = phi_to_power_mw(
        phi,
        cfg["length_m"],
        cfg["alpha_db_per_km"],
        cfg["gamma_per_w_per_m"],
        net_gain_db,
        nspan,
        report=report,
    )

    manifest: Dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z"),
        "config_path": str(config_path),
        "config_snapshot": cfg,
        "git_commit": _try_git_commit(REPO_ROOT),
        "env_name": os.environ.get("CONDA_DEFAULT_ENV", "unknown"),
        "phi_rad": phi,
        "phi_over_pi": phi / math.pi,
        "power_mw": power_mw,
        "report_path": str(report.path) if report.enabled else None,
    }

    out_dir.mkdir(parents=True, exist_ok=True)
    manifest_path = out_dir / "phi2pow_manifest.yaml"
    with manifest_path.open("w", encoding="utf-8") as f:
        yaml.safe_dump(manifest, f, sort_keys=False)
    manifest["manifest_path"] = str(manifest_path)

    return manifest


def main() -> int:
    ap = argparse.ArgumentParser(description="Convert a cumulated SPM phase into launch power")
    ap.add_argument("--config", default="configs/phi2pow_example.yaml", help="Path to YAML config (relative or absolute)")
    args = ap.parse_args()

    config_path = Path(args.config)
    if not config_path.is_absolute():
        config_path = (REPO_ROOT / config_path).resolve()

    manifest = run_phi2pow(config_path)
    print(f"phi2pow: {manifest['phi_over_pi']:.3f}*pi rad -> {manifest['power_mw']:.4g} mW")
    print(f"Manifest: {manifest['manifest_path']}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
