"""
Repository-relative paths.

The repository root is the nearest ancestor of this package holding a
``.project-root`` file. Config, logs and report locations all hang off it,
so scripts behave the same whatever the working directory.
"""

from pathlib import Path
from typing import Union

ROOT_MARKER = ".project-root"

_root: Path | None = None


def get_project_root() -> Path:
    """
    Locate (once) and return the repository root.

    Raises:
        FileNotFoundError: If no ancestor directory holds the marker file.
    """
    global _root
    if _root is None:
        here = Path(__file__).resolve().parent
        for candidate in (here, *here.parents):
            if (candidate / ROOT_MARKER).exists():
                _root = candidate
                break
        else:
            raise FileNotFoundError(
                f"No {ROOT_MARKER} marker above {here}; "
                "run from a checkout of the NYC EJ Atlas repository."
            )
    return _root


def get_path(*parts: str) -> Path:
    """``get_path("reports", "maps")`` -> <root>/reports/maps"""
    return get_project_root().joinpath(*parts)


class Paths:
    """Named locations inside the repository."""

    @property
    def root(self) -> Path:
        return get_project_root()

    @property
    def configs(self) -> Path:
        return get_path("configs")

    @property
    def params_yml(self) -> Path:
        return self.configs / "params.yml"

    @property
    def logs(self) -> Path:
        return get_path("logs")

    @property
    def reports(self) -> Path:
        return get_path("reports")

    @property
    def reports_tables(self) -> Path:
        return self.reports / "tables"

    @property
    def reports_maps(self) -> Path:
        return self.reports / "maps"


paths = Paths()


def ensure_dir(path: Union[str, Path]) -> Path:
    """mkdir -p; returns the directory as a Path."""
    directory = Path(path)
    directory.mkdir(parents=True, exist_ok=True)
    return directory
