"""Filtering and renaming of request properties before events are matched."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

log = logging.getLogger(__name__)

TRANSFORM_KEY_PREFIX = "transform."
ALLOW_FILENAMES = "transform.allow_custom"
SOUND_FILENAME = "sound.filename"
SOUND_ENABLED = "sound.enabled"
NO_SOUND = "No sound.wav"
LOOKUP_KEY = "immvibe.lookup_from_key"
SEARCH_PATH_KEY = "general_tone_search_path"


class TransformError(ValueError):
    """The transform configuration is incomplete."""


@dataclass
class TransformConfig:
    """Which request keys pass through, and under which names."""

    tone_search_path: str
    allow_all: bool = False
    allowed_keys: list[str] = field(default_factory=list)
    key_map: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> TransformConfig:
        """Build the configuration from plugin parameters.

        ``allow`` is either ``*`` or space separated keys; ``transform.<key>``
        entries rename ``<key>``; ``general_tone_search_path`` is required.
        """
        allow = params.get("allow")
        if not isinstance(allow, str):
            raise TransformError("no allow key specified")

        allow_all = allow == "*"
        allowed_keys = [] if allow_all else allow.split(" ")

        key_map = {}
        for key, value in params.items():
            if not key.startswith(TRANSFORM_KEY_PREFIX):
                continue
            new_key = key[len(TRANSFORM_KEY_PREFIX):]
            if new_key and isinstance(value, str):
                key_map[new_key] = value
                log.debug("will transform key '%s' to '%s'", new_key, value)

        search_path = params.get(SEARCH_PATH_KEY)
        if not isinstance(search_path, str):
            raise TransformError(
                "General tone search path is missing from the configuration"
            )

        return cls(
            tone_search_path=search_path,
            allow_all=allow_all,
            allowed_keys=allowed_keys,
            key_map=key_map,
        )

    def transform(
        self,
        request_properties: Mapping[str, Any],
        event_properties: Mapping[str, Any],
        context_values: Mapping[str, Any],
    ) -> dict[str, Any]:
        """Return the request properties that remain after the transform."""
        context_audio = None
        lookup = event_properties.get(LOOKUP_KEY)
        if isinstance(lookup, str):
            candidate = context_values.get(lookup)
            if isinstance(candidate, str) and candidate.endswith(NO_SOUND):
                context_audio = candidate

        if self.allow_all:
            return dict(request_properties)

        allow_custom = event_properties.get(ALLOW_FILENAMES) is True
        result: dict[str, Any] = {}

        if allow_custom:
            for key in (SOUND_FILENAME, SOUND_ENABLED):
                value = request_properties.get(key)
                if value is not None:
                    result[key] = value

        for key in self.allowed_keys:
            value = request_properties.get(key)
            if value is None:
                continue
            map_key = self.key_map.get(key)
            if map_key:
                original = request_properties.get(map_key)
                if original is not None:
                    result[f"{map_key}.original"] = original
                result[map_key] = value
            else:
                result[key] = value

        if not allow_custom and context_audio is not None:
            result[SOUND_FILENAME] = context_audio

        return result