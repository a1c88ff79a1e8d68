"""Parsing of ``key=value,key=value`` stream property strings."""

from __future__ import annotations

from collections.abc import Mapping

_MAX_KEY_BYTES = 128


class PropertyError(ValueError):
    """A property string could not be parsed."""


def _parse_into(target: dict[str, str], propstring: str) -> dict[str, str]:
    for entry in _split_entries(propstring):
        key, sep, value = entry.partition("=")
        if not sep:
            raise PropertyError(f"Invalid property string '{propstring}'")
        if len(key.encode()) >= _MAX_KEY_BYTES:
            raise PropertyError(f"property key '{key}' too long")
        if key:
            target[key] = value
    return target


def _split_entries(propstring: str):
    """Yield entries separated by commas, keeping '=' inside values intact."""
    rest = propstring
    while True:
        eq = rest.find("=")
        if eq < 0:
            yield rest
            return
        comma = rest.find(",", eq + 1)
        if comma < 0:
            yield rest
            return
        yield rest[:comma]
        rest = rest[comma + 1 :]


def parse_properties(propstring: str | None) -> dict[str, str] | None:
    """Parse ``propstring`` into a property dictionary.

    ``None`` gives ``None``; a malformed string raises :class:`PropertyError`.
    Later entries override earlier ones with the same key.
    """
    if propstring is None:
        return None
    return _parse_into({}, propstring)


def merge_properties(
    base: Mapping[str, str] | None, extra: str | None
) -> dict[str, str] | None:
    """Return a copy of ``base`` with the properties in ``extra`` applied.

    Without a base this is :func:`parse_properties` of ``extra``; without
    ``extra`` there is nothing to merge and the result is ``None``.
    ``base`` itself is never modified.
    """
    if base is None:
        return parse_properties(extra)
    if extra is None:
        return None
    return _parse_into(dict(base), extra)