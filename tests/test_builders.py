import datetime
import json
import os
import pathlib

import freezegun
import pytest

from vaultconfig import builders
from vaultconfig import exceptions
from vaultconfig import formats

from tests.helpers import StaticFetcher


def write_json(path, data):
    path.write_text(json.dumps(data))
    return path


def test_later_sources_win():
    c = (
        builders.ConfigBuilder()
        .add_values({"a": "1", "b": "1"})
        .add_value("b", "2")
        .build()
    )
    assert c["a"] == "1"
    assert c["b"] == "2"


def test_environment_file_beats_base_file(tmp_path):
    base = write_json(tmp_path / "appsettings.json", {"Db": {"Host": "base", "Port": 1}})
    env = write_json(tmp_path / "appsettings.prod.json", {"Db": {"Host": "prod"}})
    c = builders.ConfigBuilder().add_json_file(base).add_json_file(env).build()
    assert c["Db:Host"] == "prod"
    assert c["Db:Port"] == 1


def test_in_memory_values_beat_files(tmp_path):
    base = write_json(tmp_path / "appsettings.json", {"Db": {"Host": "base"}})
    c = builders.ConfigBuilder().add_json_file(base).add_value("db:host", "override").build()
    assert c["Db:Host"] == "override"


def test_add_file_picks_format_from_suffix(tmp_path):
    f = tmp_path / "settings.yaml"
    f.write_text("Db:\n  Host: h\n")
    assert builders.ConfigBuilder().add_file(f).build()["Db:Host"] == "h"


def test_add_file_with_explicit_format(tmp_path):
    f = tmp_path / "settings.conf"
    f.write_text("[Db]\nHost = h\n")
    assert builders.ConfigBuilder().add_file(f, format=formats.Format.Ini).build()["Db:Host"] == "h"


def test_add_file_with_unknown_format(tmp_path):
    with pytest.raises(exceptions.ConfigurationError):
        builders.ConfigBuilder().add_file(tmp_path / "settings.conf")


def test_required_file_missing_fails_build(tmp_path):
    builder = builders.ConfigBuilder().add_json_file(tmp_path / "missing.json")
    with pytest.raises(exceptions.ConfigurationError):
        builder.build()


def test_optional_file_missing_is_tolerated(tmp_path):
    c = builders.ConfigBuilder().add_json_file(tmp_path / "missing.json", optional=True).build()
    assert list(c.keys()) == []


def test_get_value_reads_sources_added_so_far():
    builder = builders.ConfigBuilder().add_value("Port", "8080")
    assert builder.get_value("port", transform=int) == 8080
    assert builder.get_value("missing", "d") == "d"


def test_add_secrets_adds_found_values_last():
    fetcher = StaticFetcher({"db-password": "s3cr3t"})
    c = (
        builders.ConfigBuilder()
        .add_value("db-password", "from-file")
        .add_secrets(fetcher, ["db-password", "missing"])
        .build()
    )
    assert c["db-password"] == "s3cr3t"
    assert "missing" not in c
    assert fetcher.requested == ["db-password", "missing"]


def test_add_secrets_maps_to_other_keys():
    fetcher = StaticFetcher({"db-password": "s3cr3t"})
    c = builders.ConfigBuilder().add_secrets(fetcher, {"db-password": "Db:Password"}).build()
    assert c["Db:Password"] == "s3cr3t"


def test_add_secrets_without_suppression_fails():
    fetcher = StaticFetcher({})
    with pytest.raises(exceptions.SecretNotFoundError):
        builders.ConfigBuilder().add_secrets(fetcher, ["missing"], suppress_not_found=False)


def test_environment_name(monkeypatch):
    assert builders.environment_name({}) is None
    assert builders.environment_name({"ENVIRONMENT": "  "}) is None
    assert builders.environment_name({"ENVIRONMENT": "prod"}) == "prod"
    monkeypatch.setenv("ENVIRONMENT", "test")
    assert builders.environment_name() == "test"


def test_environment_settings_path():
    assert builders.environment_settings_path("appsettings.json", "prod") == pathlib.Path("appsettings.prod.json")
    assert builders.environment_settings_path("/etc/app/settings.json", "ci") == pathlib.Path("/etc/app/settings.ci.json")


def test_default_configs_precedence(tmp_path, monkeypatch):
    monkeypatch.setenv("Shared", "env")
    monkeypatch.setenv("EnvOnly", "env")
    monkeypatch.setenv("CmdOverEnv", "env")
    write_json(tmp_path / "appsettings.json", {"Shared": "base", "BaseOnly": "base", "BaseOverEnv": "base"})
    write_json(tmp_path / "appsettings.prod.json", {"Shared": "prod"})
    monkeypatch.setenv("BaseOverEnv", "env")

    builder = builders.use_default_configs(
        builders.ConfigBuilder(),
        app_settings_path=tmp_path / "appsettings.json",
        environment="prod",
        args=["--CmdOverEnv=cmd", "--Shared=cmd"],
    )
    c = builder.add_value("Shared", "memory").build()
    assert c["Shared"] == "memory"
    assert c["EnvOnly"] == "env"
    assert c["CmdOverEnv"] == "cmd"
    assert c["BaseOverEnv"] == "base"
    assert c["BaseOnly"] == "base"

    c = builders.use_default_configs(
        builders.ConfigBuilder(),
        app_settings_path=tmp_path / "appsettings.json",
        environment="prod",
        args=["--Shared=cmd"],
    ).build()
    assert c["Shared"] == "prod"


def test_default_configs_environment_from_collaborator(tmp_path, monkeypatch):
    write_json(tmp_path / "appsettings.json", {"Name": "base"})
    write_json(tmp_path / "appsettings.staging.json", {"Name": "staging"})
    monkeypatch.setenv("ENVIRONMENT", "staging")
    c = builders.use_default_configs(builders.ConfigBuilder()).build()
    assert c["Name"] == "staging"


def test_default_configs_explicit_environment_wins(tmp_path, monkeypatch):
    write_json(tmp_path / "appsettings.staging.json", {"Name": "staging"})
    write_json(tmp_path / "appsettings.prod.json", {"Name": "prod"})
    monkeypatch.setenv("ENVIRONMENT", "staging")
    c = builders.use_default_configs(builders.ConfigBuilder(), environment="prod").build()
    assert c["Name"] == "prod"


def test_default_configs_without_files_or_environment():
    c = builders.use_default_configs(builders.ConfigBuilder(), args=[]).build()
    assert c.get("VaultConfigUnsetKey") is None


def test_default_configs_reload_environment_file(tmp_path):
    now = datetime.datetime.now()
    env_file = write_json(tmp_path / "appsettings.prod.json", {"Name": "before"})
    with freezegun.freeze_time(now):
        c = builders.use_default_configs(builders.ConfigBuilder(), environment="prod", args=[]).build()
        assert c["Name"] == "before"
        write_json(env_file, {"Name": "after"})
        s = os.stat(env_file)
        os.utime(env_file, (s.st_atime, s.st_mtime + 10))
    with freezegun.freeze_time(now + datetime.timedelta(seconds=60)):
        assert c["Name"] == "after"


def test_default_configs_environment_only_from_process(tmp_path):
    write_json(tmp_path / "appsettings.json", {"ENVIRONMENT": "prod", "Name": "base"})
    write_json(tmp_path / "appsettings.prod.json", {"Name": "prod"})
    c = builders.use_default_configs(builders.ConfigBuilder(), args=["--ENVIRONMENT=prod"]).build()
    assert c["Name"] == "base"
    assert c["ENVIRONMENT"] == "prod"
