"""Tests for CLI argument parsing."""

from unittest.mock import patch

import pytest


def test_build_subcommand():
    """Test that 'build' dispatches all config files."""
    test_args = ["mapmap", "build", "a.yaml", "b.yaml", "--stop-on-error"]

    with patch("sys.argv", test_args), patch("mapmap.main.cmd_build") as mock_build:
        from mapmap.main import main

        mock_build.return_value = 0
        result = main()

        assert mock_build.called
        args = mock_build.call_args[0][0]
        assert args.config == ["a.yaml", "b.yaml"]
        assert args.stop_on_error is True
        assert args.verbose is False
        assert result == 0


def test_summary_subcommand():
    test_args = ["mapmap", "summary", "map.yaml", "-v"]

    with patch("sys.argv", test_args), patch("mapmap.main.cmd_summary") as mock_summary:
        from mapmap.main import main

        mock_summary.return_value = 0
        main()

        args = mock_summary.call_args[0][0]
        assert args.config == "map.yaml"
        assert args.verbose is True


def test_resolve_subcommand():
    test_args = ["mapmap", "resolve", "map.yaml", "AT"]

    with patch("sys.argv", test_args), patch("mapmap.main.cmd_resolve") as mock_resolve:
        from mapmap.main import main

        mock_resolve.return_value = 0
        main()

        args = mock_resolve.call_args[0][0]
        assert args.config == "map.yaml"
        assert args.selector == "AT"


def test_formats_subcommand(capsys):
    test_args = ["mapmap", "formats"]

    with patch("sys.argv", test_args):
        from mapmap.main import main

        result = main()

    assert result == 0
    output = capsys.readouterr().out
    assert "geojson" in output
    assert "csv" in output


def test_no_args_prints_help(capsys):
    with patch("sys.argv", ["mapmap"]):
        from mapmap.main import main

        assert main() == 1

    assert "usage" in capsys.readouterr().out


def test_build_stops_on_error():
    """With --stop-on-error, remaining configs are skipped after a failure."""
    test_args = ["mapmap", "build", "a.yaml", "b.yaml", "c.yaml", "--stop-on-error"]

    with patch("sys.argv", test_args), patch("mapmap.cli.run_cli") as mock_run:
        from mapmap.main import main

        mock_run.side_effect = [0, 1, 0]
        result = main()

    assert result == 1
    assert [c.args[0] for c in mock_run.call_args_list] == ["a.yaml", "b.yaml"]


def test_build_continues_without_stop_on_error():
    test_args = ["mapmap", "build", "a.yaml", "b.yaml"]

    with patch("sys.argv", test_args), patch("mapmap.cli.run_cli") as mock_run:
        from mapmap.main import main

        mock_run.side_effect = [1, 0]
        result = main()

    assert result == 1
    assert mock_run.call_count == 2


@pytest.mark.parametrize("command", ["summary", "resolve"])
def test_inspection_commands_report_missing_config(command, tmp_path, capsys):
    args = ["mapmap", command, str(tmp_path / "missing.yaml")]
    if command == "resolve":
        args.append("x")

    with patch("sys.argv", args):
        from mapmap.main import main

        assert main() == 1

    assert "not found" in capsys.readouterr().err
