"""Path and file helpers for the JSON data directory. Blocking; callers run them in a worker thread."""

import os
import tempfile
from pathlib import Path

# Directory that contains the backoffice package; relative data paths resolve against it.
PROJECT_ROOT = Path(__file__).resolve().parents[3]


class PathTraversalError(ValueError):
    """Raised when a document path resolves outside its root directory."""


def resolve_data_path(raw_path: str | os.PathLike[str], base: Path = PROJECT_ROOT) -> Path:
    """Absolute paths pass through; relative paths resolve against base."""
    path = Path(raw_path)
    if path.is_absolute():
        return path
    return (base / path).resolve()


def file_exists(path: Path) -> bool:
    return path.exists()


def atomic_write(path: Path, data: bytes) -> None:
    """Write data to a sibling temp file, then replace path with it."""
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f"{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


def ensure_file(path: Path, default_content: bytes) -> None:
    """Create parent directories and, if path is absent, write default_content. Never overwrites."""
    path.parent.mkdir(parents=True, exist_ok=True)
    if not file_exists(path):
        atomic_write(path, default_content)


def resolve_document_path(root: Path, relative_path: str) -> Path:
    """Resolve a relative document path under root. Raises PathTraversalError if it escapes root."""
    root = root.resolve()
    full_path = (root / relative_path).resolve()
    if full_path != root and root not in full_path.parents:
        raise PathTraversalError(f"Invalid document path: {relative_path}")
    return full_path
