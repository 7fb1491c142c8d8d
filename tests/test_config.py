import json

from walksnail_osd.config import AppConfig, default_config_path
from walksnail_osd.util import Coordinates


def test_defaults():
    config = AppConfig()
    assert config.dark_mode is False
    assert config.font_path == ""
    assert config.app_update.check_on_startup is True


def test_default_config_path_name():
    assert default_config_path().stem == "saved_settings"


def test_load_missing_creates_default_file(tmp_path):
    path = tmp_path / "nested" / "settings.json"
    config = AppConfig.load_or_create(path)
    assert config == AppConfig()
    assert path.exists()
    assert AppConfig.from_dict(json.loads(path.read_text(encoding="utf-8"))) == config


def test_invalid_json_gives_clean_start(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text("{ not json", encoding="utf-8")
    config = AppConfig.load_or_create(path)
    assert config.dark_mode is True
    assert config.render_options == AppConfig().render_options


def test_wrong_shape_gives_clean_start(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps([1, 2]), encoding="utf-8")
    assert AppConfig.load_or_create(path).dark_mode is True


def test_wrong_field_type_gives_clean_start(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"font_path": 7}), encoding="utf-8")
    config = AppConfig.load_or_create(path)
    assert config.dark_mode is True
    assert config.font_path == ""


def test_save_and_load_round_trip(tmp_path):
    path = tmp_path / "settings.json"
    config = AppConfig(font_path="fonts/osd.png", dark_mode=True)
    config.osd_options.toggle_mask(Coordinates(3, 4))
    config.srt_options.show_time = True
    config.render_options.bitrate_mbps = 12
    config.app_update.check_on_startup = False
    config.save(path)
    assert AppConfig.load_or_create(path) == config


def test_dict_round_trip():
    config = AppConfig(font_path="font.png")
    config.osd_options.toggle_mask(Coordinates(1, 2))
    assert AppConfig.from_dict(config.to_dict()) == config


def test_save_failure_is_not_raised(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")
    target = blocker / "settings.json"
    AppConfig().save(target)
    assert not target.exists()