import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

import scripts.validate_config as validate_config


def test_validate_defaults_pass():
    exit_code = validate_config.main(
        [
            "--config",
            str(REPO_ROOT / "config" / "myo-osc.json"),
            "--presets",
            str(REPO_ROOT / "config" / "presets"),
            "--quiet",
        ]
    )
    assert exit_code == 0


def test_validate_flags_bad_config(tmp_path: Path, capsys):
    bad_cfg = tmp_path / "bad.yaml"
    bad_cfg.write_text(
        """
host: 127.0.0.1
port: 7777
accel:
  path: /bad/accel
  in: [-2, 2, 4]
  out: [-1, 1]
  scale: clamp
gyro: 12
"""
    )

    exit_code = validate_config.main(["--config", str(bad_cfg), "--presets", str(tmp_path), "--quiet"])
    assert exit_code == 1
    out = capsys.readouterr().out
    assert "accel.in" in out
    assert "'gyro'" in out


def test_validate_flags_bad_preset(tmp_path: Path, capsys):
    presets = tmp_path / "presets"
    presets.mkdir()
    (presets / "good.json").write_text('{"emg": true}')
    (presets / "broken.json").write_text('{"emg": {"scale": "loud"}}')
    (presets / "notes.txt").write_text("ignored")

    exit_code = validate_config.main(
        ["--config", str(REPO_ROOT / "config" / "myo-osc.json"), "--presets", str(presets), "--quiet"]
    )
    assert exit_code == 1
    out = capsys.readouterr().out
    assert "broken.json" in out
    assert "good.json" not in out


def test_validate_reports_every_failing_document(tmp_path: Path):
    cfg = tmp_path / "bridge.json"
    cfg.write_text('{"port": 0}')
    presets = tmp_path / "presets"
    presets.mkdir()
    (presets / "a.yaml").write_text("accel:\n  in: [1]\n  out: [0]\n")
    (presets / "b.json").write_text('{"gyro": "/g"}')

    failures = validate_config.validate(cfg, presets)
    assert set(failures) == {cfg, presets / "a.yaml"}
    assert len(failures[presets / "a.yaml"]) == 2
    assert all(line.startswith("a.yaml: ") for line in failures[presets / "a.yaml"])
