"""
Tests for ej_atlas.cli.
"""

import subprocess

from ej_atlas import cli
from ej_atlas.paths import get_project_root


class TestRunRender:

    def test_runs_render_script(self, monkeypatch):
        calls = []

        def fake_run(args, cwd=None):
            calls.append((args, cwd))
            return subprocess.CompletedProcess(args, 0)

        monkeypatch.setattr(cli.subprocess, "run", fake_run)
        assert cli.run_render() == 0
        (args, cwd), = calls
        assert args[-1] == str(get_project_root() / "scripts" / "render_report.py")
        assert cwd == get_project_root()

    def test_propagates_exit_code(self, monkeypatch):
        monkeypatch.setattr(cli.subprocess, "run",
                            lambda args, cwd=None: subprocess.CompletedProcess(args, 1))
        assert cli.run_render() == 1

    def test_missing_script(self, monkeypatch, capsys):
        assert cli._run_script("no_such_script.py") == 1
        assert "Script not found" in capsys.readouterr().err
