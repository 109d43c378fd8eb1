import json

import overlay_server


def test_defaults():
    args = overlay_server.parse_args([])
    assert args.config == "config.json"
    assert args.image is None
    assert args.no_hands is False


def test_cli_overrides_config(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"camera": {"index": 2}}), encoding="utf-8")
    args = overlay_server.parse_args(
        ["--config", str(path), "--camera", "5", "--opacity", "0.3", "--log-level", "DEBUG"]
    )
    cfg = overlay_server.build_config(args)
    assert cfg["camera"]["index"] == 5
    assert cfg["overlay"]["default_opacity"] == 0.3
    assert cfg["debug"]["log_level"] == "DEBUG"


def test_config_values_survive_without_overrides(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"camera": {"index": 2}}), encoding="utf-8")
    cfg = overlay_server.build_config(overlay_server.parse_args(["--config", str(path)]))
    assert cfg["camera"]["index"] == 2
