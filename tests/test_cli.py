import json
import os

import pytest

from openstack_machine import cli, driver, store
from openstack_machine.errors import ActivationTimeout, ProviderError

AUTH_FLAGS = [
    "--openstack-auth-url", "https://keystone.example.com:5000/v3",
    "--openstack-username", "demo",
    "--openstack-password", "secret",
    "--openstack-tenant-name", "demo",
]


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for key in list(os.environ):
        if key.startswith("OS_"):
            monkeypatch.delenv(key)


@pytest.fixture
def storage(tmp_path, fake_client, monkeypatch, sleeps):
    monkeypatch.setattr(driver, "GenericClient", lambda: fake_client)
    return str(tmp_path)


def run(storage, *argv):
    return cli.main(["-s", storage, *argv])


def create(storage, name="web1", *extra):
    return run(
        storage,
        "create",
        name,
        *AUTH_FLAGS,
        "--openstack-flavor-name", "m1.small",
        "--openstack-image-name", "ubuntu-22.04",
        *extra,
    )


def test_lifecycle(storage, fake_client, capsys):
    assert create(storage) == 0
    assert capsys.readouterr().out.strip() == "10.0.0.5"
    assert store.exists(storage, "web1")

    assert run(storage, "status", "web1") == 0
    assert capsys.readouterr().out.strip() == "Running"

    assert run(storage, "ip", "web1") == 0
    assert capsys.readouterr().out.strip() == "10.0.0.5"

    assert run(storage, "url", "web1") == 0
    assert capsys.readouterr().out.strip() == "tcp://10.0.0.5:2376"

    assert run(storage, "stop", "web1") == 0
    assert run(storage, "kill", "web1") == 0
    assert run(storage, "start", "web1") == 0
    assert run(storage, "restart", "web1") == 0
    assert fake_client.count("stop_instance") == 2
    assert fake_client.count("start_instance") == 1
    assert fake_client.count("restart_instance") == 1

    assert run(storage, "rm", "web1") == 0
    assert not store.exists(storage, "web1")
    assert fake_client.count("delete_instance") == 1
    assert fake_client.count("delete_key_pair") == 1


def test_create_from_yaml_file(storage, fake_client, tmp_path):
    config_file = tmp_path / "machine.yaml"
    config_file.write_text(
        "auth-url: https://keystone.example.com:5000/v3\n"
        "username: demo\n"
        "password: secret\n"
        "openstack-flavor-name: m1.small\n"
        "image-name: ubuntu-22.04\n"
        "sec-groups: [default, docker]\n"
        "ip-version: 6\n"
    )

    assert cli.main(["-s", storage, "--config", str(config_file), "create", "web1"]) == 0

    loaded = store.load(storage, "web1", client=fake_client)
    assert loaded.config.security_groups == ["default", "docker"]
    assert loaded.ip_address == "fd00::5"


def test_environment_overrides_file(storage, tmp_path, monkeypatch, fake_client):
    config_file = tmp_path / "machine.yaml"
    config_file.write_text("flavor-name: m1.huge\nimage-name: ubuntu-22.04\n")
    monkeypatch.setenv("OS_FLAVOR_NAME", "m1.small")

    argv = ["-s", storage, "--config", str(config_file), "create", "web1", *AUTH_FLAGS]
    assert cli.main(argv) == 0

    assert store.load(storage, "web1", client=fake_client).config.flavor_name == "m1.small"


def test_invalid_options_fail_before_cloud(storage, fake_client):
    assert run(storage, "create", "web1", *AUTH_FLAGS, "--openstack-image-name", "ubuntu-22.04") == 1
    assert fake_client.calls == []
    assert not store.exists(storage, "web1")


def test_failed_create_drops_local_state(storage, fake_client):
    fake_client.errors["wait_for_instance_status"] = ActivationTimeout("timeout")

    assert create(storage) == 1

    assert fake_client.count("delete_instance") == 1
    assert not store.exists(storage, "web1")


def test_failed_instance_keeps_key_pair_reachable(storage, fake_client):
    fake_client.errors["create_instance"] = ProviderError("Quota exceeded for cores")

    assert create(storage) == 1
    assert store.exists(storage, "web1")
    key_pair_name = store.load(storage, "web1").key_pair_name
    assert key_pair_name in fake_client.key_pairs

    assert run(storage, "rm", "web1") == 0

    assert fake_client.count("delete_key_pair") == 1
    assert fake_client.count("delete_instance") == 0
    assert key_pair_name not in fake_client.key_pairs
    assert not store.exists(storage, "web1")


def test_malformed_config_file(storage, fake_client, tmp_path):
    config_file = tmp_path / "machine.yaml"
    config_file.write_text("auth-url: [unclosed\n")

    assert cli.main(["-s", storage, "--config", str(config_file), "create", "web1"]) == 1

    assert fake_client.calls == []
    assert not store.exists(storage, "web1")


def test_failed_cleanup_keeps_local_state(storage, fake_client):
    fake_client.errors["wait_for_instance_status"] = ActivationTimeout("timeout")
    fake_client.errors["delete_instance"] = ProviderError("unavailable")

    assert create(storage) == 1

    assert store.exists(storage, "web1")


def test_create_refuses_existing_machine(storage, fake_client):
    assert create(storage) == 0
    assert create(storage) == 1
    assert fake_client.count("create_instance") == 1


def test_rm_force(storage, fake_client):
    assert create(storage) == 0
    fake_client.errors["delete_instance"] = ProviderError("unavailable")

    assert run(storage, "rm", "web1") == 1
    assert store.exists(storage, "web1")

    assert run(storage, "rm", "-f", "web1") == 0
    assert not store.exists(storage, "web1")


def test_unknown_machine(storage):
    assert run(storage, "status", "ghost") == 1


def test_inspect_masks_secrets(storage, capsys):
    assert create(storage) == 0
    capsys.readouterr()

    assert run(storage, "inspect", "web1") == 0

    data = json.loads(capsys.readouterr().out)
    assert data["config"]["password"] == "********"
    assert data["config"]["username"] == "demo"
    assert data["machine_id"] == "instance-1"


def test_options(capsys):
    assert cli.main(["options"]) == 0
    out = capsys.readouterr().out
    assert "--openstack-auth-url" in out
    assert "OS_ACTIVE_TIMEOUT" in out
