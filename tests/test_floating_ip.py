import pytest

from openstack_machine.client import FLOATING, Address, FloatingIP
from openstack_machine.errors import ProviderError


@pytest.fixture
def pool_driver(make_driver, fake_client):
    fake_client.addresses = [Address("203.0.113.99", FLOATING, 4)]
    return make_driver(floatingip_pool="public")


def test_reuses_first_unattached_ip(pool_driver, fake_client):
    fake_client.floating_ips = [
        FloatingIP(id="fip-1", ip="203.0.113.1", port_id="port-a"),
        FloatingIP(id="fip-2", ip="203.0.113.2", port_id=""),
        FloatingIP(id="fip-3", ip="203.0.113.3", port_id="port-b"),
        FloatingIP(id="fip-4", ip="203.0.113.4", port_id=""),
    ]

    pool_driver.create()

    assert ("assign_floating_ip", "instance-1", "203.0.113.2") in fake_client.calls
    assert fake_client.count("allocate_floating_ip") == 0
    assert pool_driver.ip_address == "203.0.113.2"
    # the assigned address is adopted, no polling needed
    assert fake_client.count("get_instance_ip_addresses") == 0


def test_allocates_when_all_attached(pool_driver, fake_client):
    fake_client.floating_ips = [
        FloatingIP(id="fip-1", ip="203.0.113.1", port_id="port-a"),
    ]

    pool_driver.create()

    assert fake_client.count("allocate_floating_ip") == 1
    assert ("assign_floating_ip", "instance-1", "203.0.113.99") in fake_client.calls
    assert pool_driver.ip_address == "203.0.113.99"


def test_runs_after_instance_is_active(pool_driver, fake_client):
    pool_driver.create()
    names = fake_client.names()
    assert names.index("wait_for_instance_status") < names.index("get_floating_ips")


def test_uses_network_session(pool_driver, fake_client):
    pool_driver.create()
    names = fake_client.names()
    assert names[names.index("get_floating_ips") - 1] == "init_network_client"


def test_nova_network_uses_compute_session(make_driver, fake_client):
    driver = make_driver(floatingip_pool="public", nova_network=True)

    driver.create()

    names = fake_client.names()
    assert names[names.index("get_floating_ips") - 1] == "init_compute_client"
    assert "init_network_client" not in names


def test_assignment_failure_removes_instance(pool_driver, fake_client):
    error = ProviderError("No more floating IPs in pool public")
    fake_client.errors["allocate_floating_ip"] = error

    with pytest.raises(ProviderError) as excinfo:
        pool_driver.create()

    assert excinfo.value is error
    assert fake_client.count("delete_instance") == 1
    assert fake_client.count("assign_floating_ip") == 0


def test_skipped_without_pool(make_driver, fake_client):
    make_driver().create()
    assert fake_client.count("get_floating_ips") == 0
    assert fake_client.count("allocate_floating_ip") == 0
