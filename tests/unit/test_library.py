"""
Unit tests for pykadm5.native.library.
"""

import pytest

from pykadm5.core.exceptions import LibraryLoadError
from pykadm5.native.cdefs import ffi
from pykadm5.native.library import Kadm5Library, KAdm5Variant, load_library


class TestVariant:
    """Tests for KAdm5Variant."""

    def test_client_candidates(self):
        candidates = KAdm5Variant.CLIENT.candidates
        assert candidates[0] == "libkadm5clnt_mit.so.12"
        assert all("kadm5clnt" in name for name in candidates)

    def test_server_candidates(self):
        assert all("kadm5srv" in name for name in KAdm5Variant.SERVER.candidates)

    def test_is_server(self):
        assert Kadm5Library(ffi, object(), KAdm5Variant.SERVER).is_server
        assert not Kadm5Library(ffi, object(), KAdm5Variant.CLIENT).is_server


class TestLoadLibrary:
    """Tests for load_library."""

    def test_missing_library(self, tmp_path):
        path = str(tmp_path / "libkadm5clnt_mit.so")
        with pytest.raises(LibraryLoadError) as excinfo:
            load_library(KAdm5Variant.CLIENT, path)
        assert path in str(excinfo.value)

    @pytest.mark.native
    def test_load_installed_client(self):
        """Requires the MIT client library to be installed."""
        try:
            library = load_library(KAdm5Variant.CLIENT)
        except LibraryLoadError:
            pytest.skip("libkadm5clnt_mit is not installed")
        assert library.variant is KAdm5Variant.CLIENT
        assert load_library(KAdm5Variant.CLIENT) is library
