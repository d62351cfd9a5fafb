"""Filesystem helpers used while materializing a project."""

import json
import shutil
import tempfile
import zipfile
from pathlib import Path
from typing import Any, Union

from .errors import ExtractionError

PathLike = Union[str, Path]


def path_exists(path: PathLike) -> bool:
    return Path(path).exists()


def get_temp_file_path(name: str) -> Path:
    return Path(tempfile.gettempdir()) / name


def create_dir(path: PathLike) -> Path:
    """Create a directory (and parents); an existing directory is fine."""
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def delete_file(path: PathLike) -> None:
    """Delete a file, ignoring one that is already gone."""
    Path(path).unlink(missing_ok=True)


def delete_dir(path: PathLike) -> None:
    """Recursively delete a directory, ignoring one that is already gone."""
    try:
        shutil.rmtree(path)
    except FileNotFoundError:
        pass


def unzip_file(zip_path: PathLike, output_dir: PathLike) -> list[str]:
    """Extract every entry of ``zip_path`` into ``output_dir``.

    Returns:
        list[str]: Archive entry names

    Raises:
        ExtractionError: The archive is missing, corrupt, or has entries
            that would land outside ``output_dir``
    """
    output_dir = create_dir(output_dir)
    root = output_dir.resolve()
    try:
        with zipfile.ZipFile(zip_path, "r") as zip_ref:
            names = zip_ref.namelist()
            for name in names:
                target = (root / name).resolve()
                if target != root and root not in target.parents:
                    raise ExtractionError(f"Archive entry escapes destination: {name}")
            zip_ref.extractall(output_dir)
    except ExtractionError:
        raise
    except (zipfile.BadZipFile, OSError, EOFError) as e:
        raise ExtractionError("Failed to unzip file", detail=str(e)) from e
    return names


def read_file(path: PathLike) -> Any:
    """Read a text file; ``.json`` files are decoded."""
    path = Path(path)
    content = path.read_text(encoding="utf-8")
    if path.suffix == ".json":
        return json.loads(content)
    return content


def write_file(path: PathLike, content: Union[str, bytes]) -> None:
    path = Path(path)
    if isinstance(content, bytes):
        path.write_bytes(content)
    else:
        path.write_text(content, encoding="utf-8")


def copy(src: PathLike, dest: PathLike) -> None:
    """Copy a file or a whole directory tree, merging into ``dest``."""
    src = Path(src)
    if src.is_dir():
        shutil.copytree(src, dest, dirs_exist_ok=True)
    else:
        shutil.copy2(src, dest)
