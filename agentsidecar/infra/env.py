"""Dotenv-style environment parsing and backend environment assembly."""

from __future__ import annotations

from collections.abc import Mapping


def _closing_quote(text: str, quote: str) -> int:
    """Index of the unescaped closing quote in ``text`` (opening at 0), or -1."""
    escaped = False
    for i in range(1, len(text)):
        char = text[i]
        if escaped:
            escaped = False
        elif char == "\\":
            escaped = True
        elif char == quote:
            return i
    return -1


def parse_env_string(env_string: str) -> dict[str, str]:
    """Parse ``KEY=value`` lines into a dict.

    Blank lines and ``#`` comments are skipped, an ``export `` prefix is
    allowed, and single or double quoted values may span several lines.
    Inside quotes ``\\<quote>`` and ``\\\\`` are unescaped. Lines without
    ``=`` or with an empty key are ignored.
    """
    result: dict[str, str] = {}
    lines = env_string.split("\n")
    index = 0
    while index < len(lines):
        line = lines[index].strip()
        index += 1
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export "):].strip()

        key, sep, value = line.partition("=")
        key = key.strip()
        if not sep or not key:
            continue

        value = value.strip()
        if len(value) > 1 and value[0] in ("'", '"'):
            quote = value[0]
            end = _closing_quote(value, quote)
            while end == -1 and index < len(lines):
                value += "\n" + lines[index]
                index += 1
                end = _closing_quote(value, quote)
            if end != -1:
                value = value[1:end].replace("\\" + quote, quote).replace("\\\\", "\\")
        result[key] = value
    return result


def apply_overrides(base: Mapping[str, str], overrides: Mapping[str, str]) -> dict[str, str]:
    """Merge ``overrides`` into a copy of ``base``; an empty value removes the key."""
    env = dict(base)
    for key, value in overrides.items():
        if value == "":
            env.pop(key, None)
        else:
            env[key] = value
    return env
