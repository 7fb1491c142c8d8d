import json

import pytest

from walksnail_osd.render_settings import RenderSettings


def test_defaults():
    settings = RenderSettings()
    assert settings.bitrate_mbps == 40
    assert settings.keep_quality is True
    assert settings.rendering_live_view is True
    assert settings.use_chroma_key is False
    assert settings.chroma_key == (1.0 / 255.0, 177.0 / 255.0, 64.0 / 255.0, 1.0)


def test_round_trip_through_json():
    settings = RenderSettings(selected_encoder_idx=3, bitrate_mbps=12, upscale=True, chroma_key=(0.5, 0.25, 0.0, 1.0))
    restored = RenderSettings.from_dict(json.loads(json.dumps(settings.to_dict())))
    assert restored == settings


def test_partial_dict_keeps_defaults():
    settings = RenderSettings.from_dict({"upscale": True})
    assert settings.upscale is True
    assert settings.bitrate_mbps == RenderSettings().bitrate_mbps


def test_rejects_wrong_boolean_type():
    with pytest.raises(TypeError):
        RenderSettings.from_dict({"upscale": 1})


def test_rejects_bad_chroma_key_length():
    with pytest.raises(ValueError):
        RenderSettings.from_dict({"chroma_key": [0.1, 0.2, 0.3]})


def test_rejects_negative_encoder_index():
    with pytest.raises(ValueError):
        RenderSettings.from_dict({"selected_encoder_idx": -1})


def test_rejects_non_mapping():
    with pytest.raises(TypeError):
        RenderSettings.from_dict([("upscale", True)])