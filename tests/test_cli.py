"""Tests for the command line front-end."""
import pytest

from aideplus.__main__ import build_parser, main


class TestCli:
    def test_feedback_arguments(self):
        args = build_parser().parse_args(["feedback", "m1", "4", "--comment", "Clair"])
        assert (args.message_id, args.rating, args.comment) == ("m1", 4, "Clair")
        assert args.config == "config.yaml"

    def test_feedback_rating_out_of_range(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["feedback", "m1", "9"])

    def test_config_check(self, tmp_path, capsys):
        config = tmp_path / "config.yaml"
        config.write_text("api:\n  base_url: https://aide.example\n", encoding="utf-8")
        main(["config-check", "-c", str(config), "-e", str(tmp_path / "none.env")])
        out = capsys.readouterr().out
        assert "Configuration valid" in out
        assert "https://aide.example/api/v1" in out

    def test_missing_config_exits(self, tmp_path):
        with pytest.raises(SystemExit) as excinfo:
            main(["usage", "-c", str(tmp_path / "nope.yaml")])
        assert excinfo.value.code == 1
