"""
Report file writers and YAML loading.

Report artifacts are rendered into a ``<name>_*.tmp`` file beside the target
and renamed over it only once rendering succeeded. A failed render leaves
the previous artifact in place; stray temp files are removed by
clean_tmp_files at the start of the next render.
"""

import json
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, TYPE_CHECKING

import yaml

if TYPE_CHECKING:
    import folium
    import pandas as pd

from ej_atlas.paths import ensure_dir


TMP_SUFFIX = ".tmp"


@contextmanager
def replacing(target_path: Path | str) -> Iterator[Path]:
    """
    Yield a temp path next to target_path; on clean exit it replaces the
    target, on error it is deleted and the exception propagates.
    """
    target_path = Path(target_path)
    ensure_dir(target_path.parent)
    fd, name = tempfile.mkstemp(prefix=f"{target_path.stem}_", suffix=TMP_SUFFIX,
                                dir=target_path.parent)
    os.close(fd)
    staged = Path(name)
    try:
        yield staged
        staged.replace(target_path)
    finally:
        staged.unlink(missing_ok=True)


def atomic_write_text(target_path: Path | str, content: str) -> Path:
    with replacing(target_path) as staged:
        staged.write_text(content, encoding="utf-8")
    return Path(target_path)


def atomic_write_json(target_path: Path | str, data: Any, indent: int = 2) -> Path:
    return atomic_write_text(target_path, json.dumps(data, indent=indent, default=str) + "\n")


def atomic_write_csv(target_path: Path | str, df: "pd.DataFrame") -> Path:
    """CSV without the index; an empty frame still gets its header row."""
    with replacing(target_path) as staged:
        df.to_csv(staged, index=False)
    return Path(target_path)


def atomic_write_map(target_path: Path | str, m: "folium.Map") -> Path:
    """Self-contained folium HTML page."""
    with replacing(target_path) as staged:
        m.save(str(staged))
    return Path(target_path)


def read_yaml(file_path: Path | str) -> Any:
    """
    Parse a YAML file with yaml.safe_load.

    Raises:
        FileNotFoundError: If the file does not exist.
    """
    file_path = Path(file_path)
    if not file_path.is_file():
        raise FileNotFoundError(f"YAML file not found: {file_path}")
    return yaml.safe_load(file_path.read_text(encoding="utf-8"))


def clean_tmp_files(directory: Path | str) -> list[Path]:
    """Delete temp files left in directory by an interrupted render."""
    directory = Path(directory)
    if not directory.is_dir():
        return []
    stale = sorted(directory.glob(f"*{TMP_SUFFIX}"))
    for path in stale:
        path.unlink()
    return stale
