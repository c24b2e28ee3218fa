import json

import pytest

from balance_diff.core.errors import ConfigError
from balance_diff.services.profiles import (
    default_config_locations,
    load_config,
    parse_address_list,
    resolve_profile,
)


def write_config(path, profiles):
    path.write_text(json.dumps({"profiles": profiles}), encoding="utf-8")
    return path


def test_default_locations_order(tmp_path):
    cwd = tmp_path / "work"
    home = tmp_path / "home"
    locations = default_config_locations(cwd=cwd, home=home)
    assert locations == [
        cwd / ".balancediffrc.json",
        cwd / ".balancediffrc",
        home / ".balancediffrc.json",
        home / ".config" / "balancediff" / "config.json",
    ]


def test_resolve_profile_from_explicit_path(tmp_path):
    path = write_config(tmp_path / "cfg.json", {"treasury": {"address": "0xabc", "network": "base"}})
    profile = resolve_profile("treasury", explicit=str(path))
    assert profile.addresses == ["0xabc"]
    assert profile.network == "base"
    assert profile.source == path


def test_profile_address_list(tmp_path):
    path = write_config(tmp_path / "cfg.json", {"team": {"address": ["0xa", " 0xb ", ""]}})
    profile = resolve_profile("team", explicit=str(path))
    assert profile.addresses == ["0xa", "0xb"]
    assert profile.network is None


def test_first_existing_default_location_wins(tmp_path):
    first = tmp_path / "missing.json"
    second = write_config(tmp_path / "second.json", {"p": {"address": "0x2"}})
    third = write_config(tmp_path / "third.json", {"p": {"address": "0x3"}})
    profile = resolve_profile("p", locations=[first, second, third])
    assert profile.addresses == ["0x2"]


def test_unreadable_default_location_is_skipped(tmp_path):
    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    good = write_config(tmp_path / "good.json", {"p": {"address": "0x1"}})
    path, config = load_config(locations=[broken, good])
    assert path == good
    assert "p" in config.profiles


def test_explicit_config_errors(tmp_path):
    with pytest.raises(ConfigError):
        load_config(str(tmp_path / "nope.json"))

    broken = tmp_path / "broken.json"
    broken.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(str(broken))


def test_missing_profile_lists_available(tmp_path):
    path = write_config(tmp_path / "cfg.json", {"a": {"address": "0x1"}, "b": {"address": "0x2"}})
    with pytest.raises(ConfigError) as excinfo:
        resolve_profile("c", explicit=str(path))
    assert excinfo.value.details["available"] == ["a", "b"]
    assert excinfo.value.exit_code == 1


def test_no_config_found(tmp_path):
    with pytest.raises(ConfigError):
        resolve_profile("x", locations=[tmp_path / "none.json"])


def test_parse_address_list_from_comma_string():
    assert parse_address_list("0xa, 0xb,,0xc ") == ["0xa", "0xb", "0xc"]


def test_parse_address_list_from_file(tmp_path):
    path = tmp_path / "addresses.txt"
    path.write_text("# watched wallets\n0xa\n\n  0xb  \n# 0xc\n", encoding="utf-8")
    assert parse_address_list(str(path)) == ["0xa", "0xb"]
