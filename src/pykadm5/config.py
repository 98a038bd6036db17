"""
pykadm5 Configuration

Runtime settings that choose and drive the native library. Connection
details (realm, admin server, ports) belong in ``Params`` instead.

Environment variables read by ``KAdminConfig.from_env``:
    PYKADM5_VARIANT       ``client`` (default) or ``server``
    PYKADM5_LIBRARY       explicit path of the kadm5 shared object
    PYKADM5_SERVICE_NAME  admin service principal (``kadmin/admin``)
    PYKADM5_KEYTAB        default keytab for keytab connections
"""

from __future__ import annotations

import os
from typing import Mapping, Optional, Union

import attrs
from attrs import field

from pykadm5.core.exceptions import InvalidArgument
from pykadm5.native.cdefs import KADM5_ADMIN_SERVICE, KADM5_API_VERSION_2
from pykadm5.native.library import KAdm5Variant

DEFAULT_KEYTAB = "/etc/krb5.keytab"


def _to_variant(value: Union[str, KAdm5Variant]) -> KAdm5Variant:
    if isinstance(value, KAdm5Variant):
        return value
    try:
        return KAdm5Variant(value.strip().lower())
    except ValueError:
        raise InvalidArgument(
            f"Unknown kadm5 library variant: {value!r} (expected 'client' or 'server')"
        ) from None


@attrs.define(frozen=True)
class KAdminConfig:
    """
    pykadm5 runtime configuration.

    Attributes:
        variant: Which kadm5 library to load
        library_path: Shared object to open instead of searching
        service_name: Admin service principal to authenticate to
        default_keytab: Keytab used when a keytab connect names none
        api_version: kadm5 API version requested at initialisation
    """

    variant: KAdm5Variant = field(default=KAdm5Variant.CLIENT, converter=_to_variant)
    library_path: Optional[str] = None
    service_name: str = KADM5_ADMIN_SERVICE
    default_keytab: str = DEFAULT_KEYTAB
    api_version: int = KADM5_API_VERSION_2

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> KAdminConfig:
        """
        Build a configuration from ``PYKADM5_*`` environment variables.

        Raises:
            InvalidArgument: if ``PYKADM5_VARIANT`` is not a known variant
        """
        env = os.environ if environ is None else environ
        return cls(
            variant=env.get("PYKADM5_VARIANT", KAdm5Variant.CLIENT.value),
            library_path=env.get("PYKADM5_LIBRARY") or None,
            service_name=env.get("PYKADM5_SERVICE_NAME", KADM5_ADMIN_SERVICE),
            default_keytab=env.get("PYKADM5_KEYTAB", DEFAULT_KEYTAB),
        )

    def with_variant(self, variant: KAdm5Variant) -> KAdminConfig:
        """Copy of this configuration bound to ``variant``."""
        if variant is self.variant:
            return self
        # A configured path names one specific library
        return attrs.evolve(self, variant=variant, library_path=None)
