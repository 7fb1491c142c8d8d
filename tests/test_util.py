from pathlib import Path

from walksnail_osd.util import AppUpdate, Coordinates, Dimension, command_to_cli


def test_coordinates_are_hashable_and_compare_by_value():
    positions = {Coordinates(3, 4), Coordinates(3, 4), Coordinates(4, 3)}
    assert len(positions) == 2
    assert Coordinates(3, 4) in positions


def test_dimension_equality():
    assert Dimension(24, 36) == Dimension(24, 36)
    assert not (Dimension(24, 36) == Dimension(36, 24))


def test_dimension_str():
    assert str(Dimension(1920, 1080)) == "1920x1080"


def test_app_update_checks_on_startup_by_default():
    assert AppUpdate().check_on_startup is True
    assert AppUpdate(check_on_startup=False).check_on_startup is False


def test_command_to_cli_quotes_arguments_with_spaces():
    line = command_to_cli("ffmpeg", ["-i", "my file.mp4", "-y"])
    assert line == 'ffmpeg -i "my file.mp4" -y'


def test_command_to_cli_accepts_paths():
    line = command_to_cli(Path("ffmpeg"), [Path("out.mp4")])
    assert line.split(" ") == ["ffmpeg", "out.mp4"]


def test_command_to_cli_without_arguments_keeps_separator():
    assert command_to_cli("ffprobe", []) == "ffprobe "