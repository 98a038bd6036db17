"""
Unit tests for connection parameters and runtime configuration.
"""

import pytest

from pykadm5.admin.params import DbArgs, Params
from pykadm5.config import DEFAULT_KEYTAB, KAdminConfig
from pykadm5.core.exceptions import InvalidArgument
from pykadm5.native import cdefs as c
from pykadm5.native.library import KAdm5Variant


class TestParams:
    """Tests for Params."""

    def test_empty_mask(self):
        assert Params().mask == 0

    def test_mask_follows_set_fields(self):
        params = Params(realm="EXAMPLE.ORG", admin_server="kdc.example.org", kpasswd_port=464)
        assert params.mask == (
            c.KADM5_CONFIG_REALM | c.KADM5_CONFIG_ADMIN_SERVER | c.KADM5_CONFIG_KPASSWD_PORT
        )

    def test_server_fields(self):
        params = Params(dbname="/var/lib/krb5kdc/principal", stash_file="/etc/krb5kdc/.k5")
        assert params.mask == c.KADM5_CONFIG_DBNAME | c.KADM5_CONFIG_STASH_FILE

    @pytest.mark.parametrize("port", [-1, 65536])
    def test_port_range(self, port):
        with pytest.raises(InvalidArgument):
            Params(kadmind_port=port)

    def test_port_zero_allowed(self):
        assert Params(kadmind_port=0).mask == c.KADM5_CONFIG_KADMIND_PORT


class TestDbArgs:
    """Tests for DbArgs."""

    def test_render_in_order(self):
        db_args = DbArgs().flag("lockiter").arg("dbname", "principal")
        assert db_args.render() == ["lockiter", "dbname=principal"]
        assert len(db_args) == 2

    def test_from_dict(self):
        db_args = DbArgs.from_dict({"dbname": "principal", "lockiter": None})
        assert db_args.render() == ["dbname=principal", "lockiter"]

    @pytest.mark.parametrize("key", ["", "a=b"])
    def test_invalid_key(self, key):
        with pytest.raises(InvalidArgument):
            DbArgs().arg(key, "value")


class TestKAdminConfig:
    """Tests for KAdminConfig."""

    def test_defaults(self):
        config = KAdminConfig()
        assert config.variant is KAdm5Variant.CLIENT
        assert config.library_path is None
        assert config.service_name == "kadmin/admin"
        assert config.default_keytab == DEFAULT_KEYTAB
        assert config.api_version == c.KADM5_API_VERSION_2

    def test_variant_from_string(self):
        assert KAdminConfig(variant=" Server ").variant is KAdm5Variant.SERVER

    def test_unknown_variant(self):
        with pytest.raises(InvalidArgument):
            KAdminConfig(variant="hybrid")

    def test_from_env(self):
        config = KAdminConfig.from_env({
            "PYKADM5_VARIANT": "server",
            "PYKADM5_LIBRARY": "/opt/krb5/lib/libkadm5srv_mit.so",
            "PYKADM5_SERVICE_NAME": "kadmin/kdc.example.org",
            "PYKADM5_KEYTAB": "/etc/kadmin.keytab",
        })
        assert config.variant is KAdm5Variant.SERVER
        assert config.library_path == "/opt/krb5/lib/libkadm5srv_mit.so"
        assert config.service_name == "kadmin/kdc.example.org"
        assert config.default_keytab == "/etc/kadmin.keytab"

    def test_from_empty_env(self):
        assert KAdminConfig.from_env({}) == KAdminConfig()

    def test_from_process_env(self, monkeypatch):
        monkeypatch.setenv("PYKADM5_VARIANT", "server")
        monkeypatch.delenv("PYKADM5_LIBRARY", raising=False)
        assert KAdminConfig.from_env().variant is KAdm5Variant.SERVER

    def test_with_variant_drops_library_path(self):
        config = KAdminConfig(library_path="/opt/libkadm5clnt_mit.so")
        server = config.with_variant(KAdm5Variant.SERVER)
        assert server.variant is KAdm5Variant.SERVER
        assert server.library_path is None
        assert config.with_variant(KAdm5Variant.CLIENT) is config
