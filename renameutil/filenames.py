"""Filename helpers shared by the placeholder engine and the planner."""

# Characters that are invalid in filenames on at least one supported platform
INVALID_FILENAME_CHARS = '\\/:*?"<>|'


def split_name(filename: str) -> tuple[str, str]:
    """Split a filename into (stem, extension), the extension keeping its dot.

    A leading dot does not start an extension, so ``.profile`` has no
    extension and ``archive.tar.gz`` splits into ``archive.tar`` and ``.gz``.
    """
    if filename in ("", ".", ".."):
        return filename, ""
    dot = filename.rfind(".")
    if dot <= 0:
        return filename, ""
    return filename[:dot], filename[dot:]


def sanitize_char(char: str) -> str:
    if ord(char) <= 31 or char in INVALID_FILENAME_CHARS:
        return "_"
    return char


def sanitize_stem(stem: str) -> str:
    """Replace invalid characters in a filename stem; never returns an empty or dot-only stem."""
    if not stem:
        return "_"
    out = "".join(sanitize_char(c) for c in stem)
    if out in ("", ".", ".."):
        return "_"
    return out


def sanitize_filename(name: str) -> str:
    """Sanitize the stem of a generated filename while preserving its extension.

    The extension starts at the last dot, unless that dot is the first or the
    last character (dotfiles and trailing dots have no extension here).
    """
    dot = name.rfind(".")
    if 0 < dot < len(name) - 1:
        stem, extension = name[:dot], name[dot:]
    else:
        stem, extension = name, ""

    sanitized = sanitize_stem(stem)
    if not extension and sanitized in ("", "_"):
        return "_"
    return sanitized + extension


def iequals(a: str, b: str) -> bool:
    """Case-insensitive string equality."""
    return a.lower() == b.lower()
