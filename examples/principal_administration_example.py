#!/usr/bin/env python3
"""
Principal and Policy Administration Example

Demonstrates managing a realm through pykadm5 against a running kadmind.

Features:
1. Connecting with an admin password or an existing credential cache
2. Creating a password policy and a principal that uses it
3. Partial updates through modifiers
4. Random keys restricted to chosen key/salt types
5. Sharing one handle between worker threads

Run it with an admin principal that holds add, modify and delete
privileges, for example:

    KADMIN_PRINCIPAL=admin/admin@EXAMPLE.ORG KADMIN_PASSWORD=... \\
        python examples/principal_administration_example.py
"""

import os
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

from pykadm5 import (
    AlreadyExists,
    KAdminError,
    KeySaltList,
    PolicyBuilder,
    PrincipalAttributes,
    PrincipalBuilder,
    PrincipalKey,
    SyncKAdmin,
    connect_with_ccache,
    connect_with_password,
)


def connect():
    admin = os.environ.get("KADMIN_PRINCIPAL")
    password = os.environ.get("KADMIN_PASSWORD")
    if admin and password:
        return connect_with_password(admin, password)
    # Falls back to tickets obtained with kinit
    return connect_with_ccache()


def main():
    """Walk through common kadmin tasks."""

    print("=" * 70)
    print("pykadm5 - Principal and Policy Administration")
    print("=" * 70)
    print()

    with connect() as kadmin:
        realm = kadmin.default_realm
        user = f"pykadm5-demo@{realm}"
        service = f"HTTP/pykadm5-demo.example.org@{realm}"

        # ======================================================================
        # EXAMPLE 1: Privileges
        # ======================================================================
        print("1. Privileges")
        print("-" * 40)
        print(f"   Realm: {realm}")
        print(f"   Privileges: {kadmin.get_privileges()!r}")
        print()

        # ======================================================================
        # EXAMPLE 2: Password Policy
        # ======================================================================
        print("2. Password Policy")
        print("-" * 40)
        try:
            policy = (
                PolicyBuilder("pykadm5-demo")
                .password_min_length(12)
                .password_min_classes(3)
                .password_max_life(timedelta(days=90))
                .create(kadmin)
            )
        except AlreadyExists:
            policy = kadmin.get_policy("pykadm5-demo")
        print(f"   Policy: {policy.name}")
        print(f"   Minimum length: {policy.password_min_length}")
        print(f"   Maximum life: {policy.password_max_life}")
        print()

        # ======================================================================
        # EXAMPLE 3: User Principal
        # ======================================================================
        print("3. User Principal")
        print("-" * 40)
        principal = (
            PrincipalBuilder(user)
            .policy(policy.name)
            .attributes(PrincipalAttributes.REQUIRES_PRE_AUTH)
            .key(PrincipalKey.PASSWORD)
            .create(kadmin, password="Correct-Horse-Battery-9")
        )
        print(f"   Created: {principal.name} (kvno {principal.kvno})")
        principal = principal.modifier().max_life(timedelta(hours=8)).modify(kadmin)
        print(f"   Max ticket life: {principal.max_life}")
        print()

        # ======================================================================
        # EXAMPLE 4: Service Principal With Random Keys
        # ======================================================================
        print("4. Service Principal")
        print("-" * 40)
        keysalts = KeySaltList.from_string("aes256-cts-hmac-sha1-96:normal")
        PrincipalBuilder(service).keysalts(keysalts).create(kadmin)
        kadmin.randkey_principal(service, keysalts=keysalts)
        print(f"   Rekeyed: {kadmin.get_principal(service).kvno}")
        print()

        # ======================================================================
        # EXAMPLE 5: Concurrent Lookups
        # ======================================================================
        print("5. Concurrent Lookups")
        print("-" * 40)

    with SyncKAdmin(connect()) as shared:
        names = shared.list_principals(f"*pykadm5-demo*@{realm}")
        with ThreadPoolExecutor(max_workers=4) as pool:
            for found in pool.map(shared.get_principal, names):
                print(f"   {found.name}: policy={found.policy}")
        print()

        # ======================================================================
        # CLEANUP
        # ======================================================================
        for name in names:
            shared.delete_principal(name)
        shared.delete_policy("pykadm5-demo")
        print("   Removed demo principals and policy")


if __name__ == "__main__":
    try:
        main()
    except KAdminError as exc:
        raise SystemExit(f"kadmin error: {exc}")
