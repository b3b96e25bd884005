"""Placeholder expansion and the other string transforms applied to generated names.

The naming pattern vocabulary is closed:

    <orig_name>             original stem
    <ext>, <orig_ext>       original extension, including the dot
    <YYYY> <MM> <DD>        current local date
    <hh> <mm> <ss>          current local time
    <parent_dir>            name of the containing directory
    <file_size>             size in bytes (0 if the file cannot be read)
    <file_size_kb>          size in whole KiB (0 if the file cannot be read)
    <modified_date>         last modification date as YYYYMMDD (00000000 if unknown)
    <random:N>              N random alphanumeric characters (N capped at 64)
    <num>, <orig_num>       directory scan only: new/original trailing number
    <index>                 manual selection only: 1-based list position
"""

import logging
import random
import re
import string
from datetime import datetime

from renameutil.config import RANDOM_MAX_LENGTH
from renameutil.filenames import sanitize_filename, split_name
from renameutil.models.placeholders import PlaceholderContext
from renameutil.models.rename import CaseConversionMode, RenamingMode
from renameutil.numbers import format_number, index_width


logger = logging.getLogger(__name__)

RANDOM_ALPHABET = string.digits + string.ascii_uppercase + string.ascii_lowercase

_RANDOM_TOKEN_RE = re.compile(r"<random:(\d+)>")
_REGEX_METACHARS_RE = re.compile(r"([.^$|()\[\]{}+*?\\])")

_TIME_TOKENS = (
    ("<YYYY>", "%Y"),
    ("<MM>", "%m"),
    ("<DD>", "%d"),
    ("<hh>", "%H"),
    ("<mm>", "%M"),
    ("<ss>", "%S"),
)

_system_random = random.SystemRandom()


def escape_regex_chars(text: str) -> str:
    """Escape regex metacharacters so ``text`` matches literally."""
    return _REGEX_METACHARS_RE.sub(r"\\\1", text)


def convert_wildcard_to_regex(pattern: str) -> str:
    """Translate a '*'/'?' wildcard into an anchored regular expression.

    >>> convert_wildcard_to_regex("*.txt")
    '^.*\\\\.txt$'
    """
    if not pattern:
        return "^.*$"

    parts = ["^"]
    for char in pattern:
        if char == "*":
            parts.append(".*")
        elif char == "?":
            parts.append(".")
        else:
            parts.append(escape_regex_chars(char))
    parts.append("$")
    return "".join(parts)


def _random_string(length: int, rng: random.Random) -> str:
    return "".join(rng.choice(RANDOM_ALPHABET) for _ in range(length))


def _file_placeholders(result: str, context: PlaceholderContext) -> str:
    """Expand <file_size>, <file_size_kb> and <modified_date>."""
    if "<file_size>" not in result and "<file_size_kb>" not in result and "<modified_date>" not in result:
        return result

    size = 0
    modified = "00000000"
    path = context.full_path
    if path is not None:
        try:
            stat = path.stat()
        except OSError as e:
            logger.debug("Cannot stat %s for file placeholders: %s", path, e)
        else:
            size = stat.st_size
            modified = datetime.fromtimestamp(stat.st_mtime).strftime("%Y%m%d")

    result = result.replace("<file_size_kb>", str(size // 1024))
    result = result.replace("<file_size>", str(size))
    return result.replace("<modified_date>", modified)


def replace_placeholders(
    pattern: str,
    context: PlaceholderContext,
    rng: random.Random | None = None,
    now: datetime | None = None,
) -> str:
    """Expand the placeholders of ``pattern`` for one file and sanitize the result.

    Substitution is plain textual replacement; a value inserted for one
    placeholder is never expanded again by the same placeholder. The stem of
    the final name has invalid filename characters replaced by '_'.

    Args:
        pattern: Naming pattern, e.g. ``"pic_<num><ext>"``.
        context: Values for the current file.
        rng: Source of randomness for <random:N>. Defaults to SystemRandom.
        now: Timestamp for the date/time placeholders. Defaults to the current local time.

    Returns:
        The generated filename, never empty.
    """
    result = pattern.replace("<parent_dir>", context.parent_dir_name or "")
    result = _file_placeholders(result, context)

    rng = rng or _system_random
    result = _RANDOM_TOKEN_RE.sub(
        lambda m: _random_string(min(int(m.group(1)), RANDOM_MAX_LENGTH), rng),
        result,
    )

    if any(token in result for token, _ in _TIME_TOKENS):
        now = now or datetime.now()
        for token, fmt in _TIME_TOKENS:
            result = result.replace(token, now.strftime(fmt))

    if context.mode == RenamingMode.DIRECTORY_SCAN:
        new_num = "" if context.new_number is None else format_number(context.new_number, context.number_width)
        orig_num = (
            "" if context.original_number is None else format_number(context.original_number, context.number_width)
        )
        result = result.replace("<ext>", context.extension)
        result = result.replace("<orig_ext>", context.extension)
        result = result.replace("<num>", new_num)
        result = result.replace("<orig_num>", orig_num)
        result = result.replace("<orig_name>", context.stem)
        result = result.replace("<index>", "")
    else:
        index = format_number(context.index, index_width(context.total_files))
        result = result.replace("<index>", index)
        result = result.replace("<orig_name>", context.stem)
        result = result.replace("<orig_ext>", context.extension)
        result = result.replace("<ext>", context.extension)
        result = result.replace("<num>", "")
        result = result.replace("<orig_num>", "")

    return sanitize_filename(result)


def _expand_replacement(template: str, match: re.Match) -> str:
    """Expand an ECMAScript-style replacement template ($1, $&, $$, $`, $') for one match."""
    out = []
    i = 0
    n = len(template)
    while i < n:
        char = template[i]
        if char != "$" or i + 1 == n:
            out.append(char)
            i += 1
            continue

        nxt = template[i + 1]
        if nxt == "$":
            out.append("$")
            i += 2
        elif nxt == "&":
            out.append(match.group(0))
            i += 2
        elif nxt == "`":
            out.append(match.string[: match.start()])
            i += 2
        elif nxt == "'":
            out.append(match.string[match.end() :])
            i += 2
        elif nxt.isdigit():
            group_count = match.re.groups
            two = template[i + 1 : i + 3]
            if len(two) == 2 and two.isdigit() and 0 < int(two) <= group_count:
                out.append(match.group(int(two)) or "")
                i += 3
            elif 0 < int(nxt) <= group_count:
                out.append(match.group(int(nxt)) or "")
                i += 2
            else:
                out.append(char)
                i += 1
        else:
            out.append(char)
            i += 1
    return "".join(out)


def perform_find_replace(
    subject: str,
    find: str,
    replace: str,
    case_sensitive: bool,
    use_regex: bool = False,
) -> str:
    """Replace every non-overlapping occurrence of ``find`` in ``subject``.

    Matches are found left to right and replaced text is never rescanned. In
    regex mode ``find`` is a regular expression and ``replace`` may refer to
    groups as ``$1``; an invalid expression leaves ``subject`` unchanged.
    """
    if not find or not subject:
        return subject

    flags = 0 if case_sensitive else re.IGNORECASE

    if use_regex:
        try:
            compiled = re.compile(find, flags)
        except re.error as e:
            logger.debug("Ignoring invalid find pattern %r: %s", find, e)
            return subject
        return compiled.sub(lambda m: _expand_replacement(replace, m), subject)

    if case_sensitive:
        return subject.replace(find, replace)
    return re.sub(re.escape(find), lambda _: replace, subject, flags=flags)


def apply_case_conversion(filename: str, mode: CaseConversionMode) -> str:
    """Convert the case of the stem of ``filename``; the extension is left as is.

    Pure dotfiles such as ``.profile`` are returned unchanged.
    """
    if mode == CaseConversionMode.NO_CHANGE or not filename:
        return filename

    stem, extension = split_name(filename)
    if filename.startswith(".") and stem == filename:
        return filename

    if mode == CaseConversionMode.TO_UPPER:
        stem = stem.upper()
    elif mode == CaseConversionMode.TO_LOWER:
        stem = stem.lower()
    return stem + extension


def generate_name(
    pattern: str,
    context: PlaceholderContext,
    find: str = "",
    replace: str = "",
    case_sensitive: bool = True,
    use_regex: bool = False,
    case_mode: CaseConversionMode = CaseConversionMode.NO_CHANGE,
    rng: random.Random | None = None,
) -> str:
    """Run the full naming pipeline: placeholders, then find/replace, then case conversion."""
    name = replace_placeholders(pattern, context, rng=rng)
    name = perform_find_replace(name, find, replace, case_sensitive, use_regex)
    return apply_case_conversion(name, case_mode)
