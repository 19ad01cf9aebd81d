# tests/test_auth.py

import pytest

from keel import Keel, KeelConfig
from keel.auth import OciAuthConfig, OciClientFactory
from keel.errors import InvalidCredential


def test_missing_config_file_is_invalid_credential(tmp_path):
    auth = OciAuthConfig(config_file=str(tmp_path / "does-not-exist"))

    with pytest.raises(InvalidCredential):
        OciClientFactory(auth).get_client()


def test_missing_profile_is_invalid_credential(tmp_path):
    config_file = tmp_path / "config"
    config_file.write_text("[DEFAULT]\nregion=us-ashburn-1\n")
    auth = OciAuthConfig(config_file=str(config_file), profile_name="NOPE")

    with pytest.raises(InvalidCredential):
        OciClientFactory(auth).get_client()


def test_explicit_key_without_region_is_invalid_credential():
    auth = OciAuthConfig(
        user="ocid1.user.oc1..example",
        fingerprint="aa:bb:cc:dd:ee:ff:00:11:22:33:44:55:66:77:88:99",
        tenancy="ocid1.tenancy.oc1..example",
        key_file="/nonexistent/key.pem",
    )

    with pytest.raises(InvalidCredential, match="region"):
        OciClientFactory(auth).resolve()


def test_explicit_key_takes_precedence_over_profile(tmp_path):
    auth = OciAuthConfig(
        user="ocid1.user.oc1..example",
        fingerprint="aa:bb:cc:dd:ee:ff:00:11:22:33:44:55:66:77:88:99",
        tenancy="ocid1.tenancy.oc1..example",
        key_file="/nonexistent/key.pem",
        config_file=str(tmp_path / "does-not-exist"),
    )

    assert auth.has_explicit_key is True
    # Profile loading would fail on the missing file; explicit keys never read it
    with pytest.raises(InvalidCredential, match="region"):
        OciClientFactory(auth).resolve()


def test_keel_rejects_client_and_auth_together():
    with pytest.raises(ValueError):
        Keel(client=object(), auth=OciAuthConfig())


def test_keel_builds_client_lazily(tmp_path):
    auth = OciAuthConfig(config_file=str(tmp_path / "does-not-exist"))

    # Constructing the facade makes no calls and reads no credentials
    keel = Keel(auth=auth, config=KeelConfig(compartment_id="ocid1.compartment.oc1..x"))

    with pytest.raises(InvalidCredential):
        keel.container_engine.node_pools.get_node_pool("pool-1")
