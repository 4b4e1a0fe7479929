"""Tests for the command-line entry point."""

import json

import pytest

from field_layout import cli, config_manager, constants
from field_layout.__main__ import format_pose, main
from field_layout.geometry import Pose2, Pose3, Rotation3


@pytest.fixture(autouse=True)
def _no_env_spec(monkeypatch):
    monkeypatch.delenv(constants.SPEC_ENV_VAR, raising=False)


class TestParseArgs:
    def test_defaults(self):
        args = cli.parse_args(["summary"])
        assert args.layout == constants.DEFAULT_LAYOUT
        assert args.spec is None
        assert args.verbose is False

    def test_element_alliance_choices(self):
        with pytest.raises(SystemExit):
            cli.parse_args(["element", "Hub", "center", "--alliance", "green"])

    def test_command_required(self):
        with pytest.raises(SystemExit):
            cli.parse_args([])


class TestFormatPose:
    def test_pose2(self):
        assert format_pose(Pose2(1.0, 2.0, 0.0)) == "x=1.0000 y=2.0000 m  heading=0.00 deg"

    def test_pose3(self):
        text = format_pose(Pose3(1.0, 2.0, 0.5, Rotation3.from_degrees(yaw=90.0)))
        assert "z=0.5000" in text
        assert "yaw=90.00" in text


class TestMain:
    def test_summary(self, capsys):
        assert main(["summary"]) == 0
        out = capsys.readouterr().out
        assert "2026-rebuilt" in out
        assert "rotated" in out
        assert "Hub" in out

    def test_tag_lookup(self, capsys):
        assert main(["tag", "4"]) == 0
        out = capsys.readouterr().out
        assert out.startswith("Tag 4 (red Hub)")
        assert "x=11.3119" in out

    def test_unknown_tag_fails(self, capsys):
        assert main(["tag", "99"]) == 1
        assert capsys.readouterr().out == ""

    def test_element_red(self, capsys):
        assert main(["element", "Hub", "front score", "--alliance", "red"]) == 0
        out = capsys.readouterr().out
        assert "x=12.8298" in out
        assert "heading=0.00" in out

    def test_unknown_element_fails(self):
        assert main(["element", "Reef", "center"]) == 1

    def test_nearest(self, capsys):
        assert main(["nearest", "0.0", "0.7"]) == 0
        assert capsys.readouterr().out.startswith("Nearest tag 29")

    def test_render(self, tmp_path):
        output = tmp_path / "field.png"
        assert main(["render", str(output), "--scale", "10"]) == 0
        assert output.exists()

    def test_render_unknown_format_fails(self, tmp_path):
        output = tmp_path / "field.xyz"
        assert main(["render", str(output), "--scale", "5"]) == 1
        assert not output.exists()

    def test_nearest_nan_fails(self):
        assert main(["nearest", "nan", "0.7"]) == 1

    def test_missing_spec_file(self, tmp_path):
        assert main(["--spec", str(tmp_path / "missing.json"), "summary"]) == 1

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        assert main(["--spec", str(path), "summary"]) == 1

    def test_spec_is_a_directory(self, tmp_path):
        assert main(["--spec", str(tmp_path), "summary"]) == 1

    def test_spec_not_utf8(self, tmp_path):
        path = tmp_path / "latin.json"
        path.write_bytes(b"\xff\xfe{")
        assert main(["--spec", str(path), "summary"]) == 1

    def test_invalid_spec(self, tmp_path):
        spec = config_manager.load_spec(config_manager.packaged_spec_path(constants.DEFAULT_LAYOUT))
        spec["fiducials"]["tags"][4]["id"] = 4
        path = tmp_path / "dup.json"
        with open(path, "w") as f:
            json.dump(spec, f)
        assert main(["--spec", str(path), "summary"]) == 1

    def test_unknown_layout(self):
        assert main(["--layout", "1999-unknown", "summary"]) == 1
