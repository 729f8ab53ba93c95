from __future__ import annotations

import math

import pytest
import yaml

from drivers.run_phi2pow import run_phi2pow


def _write_config(tmp_path, **cfg):
    path = tmp_path / "link.yaml"
    path.write_text(yaml.safe_dump(cfg), encoding="utf-8")
    return path


def test_end_to_end_with_report(tmp_path) -> None:
    cfg_path = _write_config(
        tmp_path,
        length_m=[1000.0, 800.0],
        alpha_db_per_km=[0.2, 0.25],
        gamma_per_w_per_m=[1.3e-3, 1.1e-3],
        net_gain_db=[0.0, 0.0],
        nspan=10,
        phi_over_pi=1.5,
        print_report=True,
        output_dir="runs",
    )

    manifest = run_phi2pow(cfg_path)
    out_dir = tmp_path / "runs"

    assert pytest.approx(225.2729973290966, rel=1e-9) == manifest["power_mw"]
    assert (out_dir / "simul_out").exists()
    assert "Tx power: 225.3  [mW]" in (out_dir / "simul_out").read_text(encoding="utf-8")

    saved = yaml.safe_load((out_dir / "phi2pow_manifest.yaml").read_text(encoding="utf-8"))
    assert saved["config_snapshot"]["nspan"] == 10
    assert math.isclose(saved["power_mw"], manifest["power_mw"], rel_tol=1e-12)


def test_report_off_by_default(tmp_path) -> None:
    cfg_path = _write_config(
        tmp_path,
        length_m=2000.0,
        alpha_db_per_km=0.0,
        gamma_per_w_per_m=1.5e-3,
        nspan=7,
        phi_rad=0.4,
    )

    manifest = run_phi2pow(cfg_path)

    assert math.isclose(manifest["power_mw"], 0.4 / (2000.0 * 1.5e-3 * 7) * 1e3, rel_tol=1e-12)
    assert manifest["report_path"] is None
    assert not (tmp_path / "simul_out").exists()
    assert (tmp_path / "phi2pow_manifest.yaml").exists()


def test_null_net_gain_means_zero_db(tmp_path) -> None:
    common = dict(
        length_m=[1000.0, 800.0],
        alpha_db_per_km=[0.2, 0.25],
        gamma_per_w_per_m=[1.3e-3, 1.1e-3],
        nspan=10,
        phi_over_pi=1.5,
    )
    manifest = run_phi2pow(_write_config(tmp_path, net_gain_db=None, **common))

    assert math.isfinite(manifest["power_mw"])
    assert pytest.approx(225.2729973290966, rel=1e-9) == manifest["power_mw"]


def test_config_needs_exactly_one_phase(tmp_path) -> None:
    base = dict(length_m=1000.0, alpha_db_per_km=0.2, gamma_per_w_per_m=1.3e-3)

    with pytest.raises(ValueError, match="exactly one"):
        run_phi2pow(_write_config(tmp_path, **base))

    with pytest.raises(ValueError, match="exactly one"):
        run_phi2pow(_write_config(tmp_path, phi_rad=1.0, phi_over_pi=0.5, **base))


def test_config_missing_fiber_key(tmp_path) -> None:
    cfg_path = _write_config(tmp_path, length_m=1000.0, alpha_db_per_km=0.2, phi_rad=1.0)
    with pytest.raises(ValueError, match="gamma_per_w_per_m"):
        run_phi2pow(cfg_path)
