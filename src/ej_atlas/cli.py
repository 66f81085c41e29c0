"""
Command-line entry points for the pipeline scripts.

Installed via pyproject.toml [project.scripts]:

    ej-atlas-render    # Render the full report

These are wrappers around the scripts/ directory files.
"""

import subprocess
import sys

from ej_atlas.paths import get_project_root


def _run_script(script_name: str) -> int:
    """Run a pipeline script and return its exit code."""
    script_path = get_project_root() / "scripts" / script_name

    if not script_path.exists():
        print(f"Error: Script not found: {script_path}", file=sys.stderr)
        return 1

    result = subprocess.run([sys.executable, str(script_path)], cwd=get_project_root())
    return result.returncode


def run_render() -> int:
    """Fetch sources and render tables, maps and README."""
    return _run_script("render_report.py")


if __name__ == "__main__":
    sys.exit(run_render())
