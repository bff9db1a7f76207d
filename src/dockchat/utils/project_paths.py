"""String helpers for project paths.

Project paths may carry a namespace prefix (``res://``), use either slash
style, and are not guaranteed to exist on disk, so these work on strings
rather than ``pathlib`` objects.
"""

from __future__ import annotations


def _normalize(path: str) -> str:
    return (path or "").replace("\\", "/")


def file_name(path: str) -> str:
    """Return the last path component ('res://a/b.tscn' -> 'b.tscn')."""
    return _normalize(path).rsplit("/", 1)[-1]


def base_name(path: str) -> str:
    """Return the file name without its extension ('res://a/b.tscn' -> 'b')."""
    name = file_name(path)
    stem, dot, _ = name.rpartition(".")
    return stem if dot and stem else name


def extension(path: str) -> str:
    """Return the lower-cased extension without the dot, or '' if there is none."""
    name = file_name(path)
    stem, dot, ext = name.rpartition(".")
    return ext.lower() if dot and stem else ""


def base_dir(path: str, namespace: str = "") -> str:
    """Return the directory part of a project path, keeping the namespace prefix."""
    normalized = _normalize(path)
    prefix = ""
    if namespace and normalized.startswith(namespace):
        prefix = namespace
        normalized = normalized[len(namespace):]

    head, sep, _ = normalized.rpartition("/")
    if not sep:
        return prefix
    if not head:
        return prefix + "/"
    return prefix + head


def join_path(directory: str, name: str) -> str:
    """Join a directory from ``base_dir`` with a file name."""
    if not directory:
        return name
    if directory.endswith("/"):
        return directory + name
    return f"{directory}/{name}"
