import json
import sys
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from software.myo_bridge.config_validation import CHANNELS, ChannelPolicy, InvalidArguments, InvalidConfig
from software.myo_bridge.scaling import Range, Scaling
from software.myo_bridge.settings import (
    DEFAULT_HOST,
    DEFAULT_PORT,
    DEFAULT_SETTINGS,
    Settings,
    describe_settings,
    load_settings_file,
    settings_from_args,
    settings_from_document,
    settings_from_flags,
)


def test_global_defaults():
    assert DEFAULT_SETTINGS.host == DEFAULT_HOST == "127.0.0.1"
    assert DEFAULT_SETTINGS.port == DEFAULT_PORT
    assert DEFAULT_SETTINGS.console is True
    assert DEFAULT_SETTINGS.log_osc is False


def test_document_channels_and_globals():
    settings = settings_from_document(
        {
            "accel": {"path": "/a/x", "in": [-2, 2], "out": [-1, 1], "scale": "clamp"},
            "emg": True,
            "host": "10.0.0.5",
            "port": 9001,
            "logOsc": True,
        }
    )
    accel = settings.policy("accel")
    assert accel.path == "/a/x"
    assert accel.scaling is Scaling.CLAMP
    assert accel.in_range == Range(-2, 2)
    assert settings.policy("emg").enabled
    # Anything the document leaves out is off, never undefined.
    assert settings.enabled_channels() == ["accel", "emg"]
    assert (settings.host, settings.port) == ("10.0.0.5", 9001)
    assert settings.log_osc is True
    assert settings.console is True


def test_document_nulls_keep_previous_globals():
    base = settings_from_document({"host": "stage.local", "port": 9100, "console": False})
    settings = settings_from_document({"host": None, "port": None, "console": None, "pose": "/p"}, base)
    assert (settings.host, settings.port, settings.console) == ("stage.local", 9100, False)


def test_orientation_quat_is_its_own_channel():
    settings = settings_from_document({"orientation": False, "orientationQuat": "/q"})
    assert not settings.policy("orientation").enabled
    assert settings.policy("orientationQuat").path == "/q"


def test_document_errors_are_collected():
    with pytest.raises(InvalidConfig) as excinfo:
        settings_from_document(
            {"accel": 3, "gyro": {"scale": "log"}, "port": "seven", "console": "yes", "acel": True}
        )
    errors = excinfo.value.errors
    assert len(errors) == 5
    assert any("acel" in e for e in errors)


@pytest.mark.parametrize("doc", [[1, 2], "accel", 7])
def test_document_must_be_mapping(doc):
    with pytest.raises(InvalidConfig):
        settings_from_document(doc)


def test_empty_document_changes_nothing():
    assert settings_from_document(None) is DEFAULT_SETTINGS


def test_settings_channels_are_read_only():
    settings = settings_from_document(None)
    with pytest.raises(TypeError):
        settings.channels["accel"] = None
    assert DEFAULT_SETTINGS.policy("accel").path == "/myo/accel"


def test_settings_copy_the_channel_mapping():
    channels = {ch: ChannelPolicy.at_default(ch) for ch in CHANNELS}
    settings = Settings(channels=channels)
    channels["accel"] = ChannelPolicy.disabled("accel")
    assert settings.policy("accel").enabled


def test_load_settings_file_reads_json_and_yaml(tmp_path):
    json_path = tmp_path / "bridge.json"
    json_path.write_text(json.dumps({"gyro": "/g", "port": 8000}))
    yaml_path = tmp_path / "bridge.yaml"
    yaml_path.write_text("gyro:\n  path: /g\n  in: [-1, 1]\nport: 8001\n")

    from_json = load_settings_file(json_path)
    from_yaml = load_settings_file(yaml_path)
    assert from_json.policy("gyro").path == from_yaml.policy("gyro").path == "/g"
    assert (from_json.port, from_yaml.port) == (8000, 8001)
    assert from_yaml.policy("gyro").scaling is Scaling.SCALE


def test_load_settings_file_failures(tmp_path):
    with pytest.raises(InvalidConfig):
        load_settings_file(tmp_path / "missing.json")
    broken = tmp_path / "broken.json"
    broken.write_text("{accel: [")
    with pytest.raises(InvalidConfig):
        load_settings_file(broken)
    bad = tmp_path / "bad.json"
    bad.write_text(json.dumps({"rssi": {"in": [1]}}))
    with pytest.raises(InvalidConfig) as excinfo:
        load_settings_file(bad)
    assert excinfo.value.errors[0].startswith("bad.json: ")


def test_shipped_config_loads():
    settings = load_settings_file(REPO_ROOT / "config" / "myo-osc.json")
    assert "accel" in settings.enabled_channels()
    assert "emg" not in settings.enabled_channels()


# ---- flags ------------------------------------------------------------------


def test_no_channel_flags_enables_everything():
    settings = settings_from_flags([])
    assert settings.enabled_channels() == list(CHANNELS)
    assert (settings.host, settings.port) == (DEFAULT_HOST, DEFAULT_PORT)


@pytest.mark.parametrize("flag, channel", [("--emg", "emg"), ("-a", "accel"), ("--quat", "orientationQuat")])
def test_one_enable_flag_disables_the_rest(flag, channel):
    settings = settings_from_flags([flag])
    assert settings.enabled_channels() == [channel]


def test_disable_flag_alone_keeps_others_on():
    settings = settings_from_flags(["--noaccel", "-G"])
    enabled = settings.enabled_channels()
    assert "accel" not in enabled and "gyro" not in enabled
    assert len(enabled) == len(CHANNELS) - 2


def test_disable_wins_over_enable():
    settings = settings_from_flags(["--accel", "--noaccel", "--pose"])
    assert settings.enabled_channels() == ["pose"]


def test_inline_address_on_enable_flag():
    settings = settings_from_flags(["--accel=/hand/accel", "--gyro", "9000"])
    assert settings.policy("accel").path == "/hand/accel"
    assert settings.policy("gyro").path == "/myo/gyro"
    assert settings.port == 9000


def test_space_separated_address_on_enable_flag():
    settings = settings_from_flags(["--accel", "/hand/accel", "9000"])
    assert settings.policy("accel").path == "/hand/accel"
    assert settings.enabled_channels() == ["accel"]
    assert (settings.host, settings.port) == (DEFAULT_HOST, 9000)

    settings = settings_from_flags(["--emg", "/e"])
    assert settings.policy("emg").path == "/e"
    assert settings.port == DEFAULT_PORT


def test_bare_enable_flag_leaves_host_and_port_alone():
    settings = settings_from_flags(["--gyro", "10.0.0.5", "9001"])
    assert settings.policy("gyro").path == "/myo/gyro"
    assert (settings.host, settings.port) == ("10.0.0.5", 9001)


def test_combined_short_flags():
    assert settings_from_flags(["-ag"]).enabled_channels() == ["accel", "gyro"]


def test_single_positional_is_port_only():
    settings = settings_from_flags(["9000"])
    assert settings.port == 9000
    assert settings.host == DEFAULT_HOST


def test_two_positionals_set_host_and_port():
    settings = settings_from_flags(["10.0.0.5", "9001"])
    assert (settings.host, settings.port) == ("10.0.0.5", 9001)


@pytest.mark.parametrize(
    "argv",
    [["a", "b", "c"], ["host", "port"], ["70000"], ["--bogus"], ["--accel=/a", "1", "2", "3"]],
)
def test_bad_arguments_raise(argv):
    with pytest.raises(InvalidArguments):
        settings_from_flags(argv)


def test_toggle_flags():
    settings = settings_from_flags(["--log-osc", "--no-console"])
    assert settings.log_osc is True
    assert settings.console is False


def test_flags_layer_over_document():
    base = settings_from_document(
        {"accel": {"path": "/a/x", "in": [-2, 2], "out": [-1, 1], "scale": "clamp"}, "gyro": True, "port": 8000}
    )
    untouched = settings_from_flags([], base)
    assert untouched.enabled_channels() == ["accel", "gyro"]

    narrowed = settings_from_flags(["--accel", "9100"], base)
    assert narrowed.enabled_channels() == ["accel"]
    assert narrowed.policy("accel").scaling is Scaling.CLAMP
    assert narrowed.policy("accel").path == "/a/x"
    assert narrowed.port == 9100

    widened = settings_from_flags(["--pose", "--accel"], base)
    assert widened.enabled_channels() == ["accel", "pose"]


def test_settings_from_args_loads_config(tmp_path):
    cfg = tmp_path / "bridge.yaml"
    cfg.write_text("emg: /e\nlogOsc: true\nhost: 192.168.1.20\n")
    settings = settings_from_args(["--config", str(cfg), "9300"])
    assert settings.enabled_channels() == ["emg"]
    assert settings.log_osc is True
    assert (settings.host, settings.port) == ("192.168.1.20", 9300)


def test_describe_settings_lists_every_channel():
    text = describe_settings(settings_from_flags(["--emg=/e"]))
    assert text.startswith("Settings<")
    assert "  emg: /e" in text
    assert "  accel: (none)" in text
    for channel in CHANNELS:
        assert f"  {channel}: " in text
