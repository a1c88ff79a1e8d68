import pytest

from tonegend.transform import TransformConfig, TransformError

BASE = {"general_tone_search_path": "/usr/share/sounds"}


def config(**extra):
    params = dict(BASE)
    params.update(extra)
    return TransformConfig.from_params(params)


def test_missing_allow_raises():
    with pytest.raises(TransformError):
        TransformConfig.from_params(BASE)


def test_missing_search_path_raises():
    with pytest.raises(TransformError):
        TransformConfig.from_params({"allow": "a"})


def test_allow_all_passes_everything_through():
    cfg = config(allow="*")
    props = {"a": 1, "b": "x"}
    result = cfg.transform(props, {}, {})
    assert cfg.allow_all is True
    assert result == props
    assert result is not props


def test_params_are_parsed():
    params = {"allow": "a b", "transform.a": "x", "transform.": "ignored"}
    cfg = config(**params)
    assert cfg.allowed_keys == ["a", "b"]
    assert cfg.key_map == {"a": "x"}
    assert cfg.tone_search_path == "/usr/share/sounds"


def test_unlisted_keys_are_dropped():
    cfg = config(allow="a")
    assert cfg.transform({"a": 1, "c": 2}, {}, {}) == {"a": 1}


def test_mapped_key_keeps_original():
    cfg = config(**{"allow": "a b", "transform.a": "x"})
    result = cfg.transform({"a": 1, "x": 2, "b": 3, "c": 4}, {}, {})
    assert result == {"x.original": 2, "x": 1, "b": 3}


def test_mapped_key_without_original():
    cfg = config(**{"allow": "a", "transform.a": "x"})
    assert cfg.transform({"a": 1}, {}, {}) == {"x": 1}


def test_custom_filenames_allowed():
    cfg = config(allow="a")
    props = {"sound.filename": "/tmp/a.wav", "sound.enabled": True, "z": 1}
    result = cfg.transform(props, {"transform.allow_custom": True}, {})
    assert result == {"sound.filename": "/tmp/a.wav", "sound.enabled": True}


def test_custom_filenames_denied_by_default():
    cfg = config(allow="a")
    result = cfg.transform({"sound.filename": "/tmp/a.wav"}, {}, {})
    assert result == {}


def test_no_sound_context_overrides_filename():
    cfg = config(allow="a")
    event = {"immvibe.lookup_from_key": "ringer"}
    context = {"ringer": "/sounds/No sound.wav"}
    result = cfg.transform({"a": 1}, event, context)
    assert result == {"a": 1, "sound.filename": "/sounds/No sound.wav"}


def test_regular_context_sound_is_ignored():
    cfg = config(allow="a")
    event = {"immvibe.lookup_from_key": "ringer"}
    context = {"ringer": "/sounds/ring.wav"}
    assert cfg.transform({"a": 1}, event, context) == {"a": 1}


def test_custom_allowed_skips_context_override():
    cfg = config(allow="a")
    event = {"immvibe.lookup_from_key": "ringer", "transform.allow_custom": True}
    context = {"ringer": "/sounds/No sound.wav"}
    result = cfg.transform({"sound.filename": "/tmp/mine.wav"}, event, context)
    assert result == {"sound.filename": "/tmp/mine.wav"}