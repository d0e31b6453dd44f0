"""Tests for persisted preferences."""

import pytest

from camfilter.exceptions import StorageUnavailable
from camfilter.filters import FilterAdjustments
from camfilter.preferences import Preferences


def test_missing_file_gives_defaults(preferences_path):
    prefs = Preferences.load(preferences_path)

    assert prefs == Preferences(filter_index=0, brightness=5, contrast=5, saturation=8, corner_radius=3)
    assert prefs.adjustments() == FilterAdjustments()


def test_save_and_load(preferences_path):
    Preferences(filter_index=7, brightness=2, contrast=9, saturation=0, corner_radius=10).save(preferences_path)

    prefs = Preferences.load(preferences_path)

    assert prefs.filter_index == 7
    assert prefs.adjustments() == FilterAdjustments.from_progress(2, 9, 0, 10)


def test_unknown_keys_are_ignored(preferences_path):
    preferences_path.write_text("filter_index: 4\nlanguage: en\n")

    assert Preferences.load(preferences_path).filter_index == 4


def test_empty_file_gives_defaults(preferences_path):
    preferences_path.write_text("")

    assert Preferences.load(preferences_path) == Preferences()


@pytest.mark.parametrize("content", [
    "- 1\n- 2\n",
    "filter_index: [unclosed\n",
    "filter_index: null\n",
    "brightness: high\n",
])
def test_invalid_file_is_storage_error(preferences_path, content):
    preferences_path.write_text(content)

    with pytest.raises(StorageUnavailable):
        Preferences.load(preferences_path)


def test_unwritable_location_is_storage_error(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("")

    with pytest.raises(StorageUnavailable):
        Preferences().save(blocker / "preferences.yaml")
