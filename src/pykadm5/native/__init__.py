"""
pykadm5 Native Layer

Everything that touches libkadm5 memory lives in this package; no raw
pointer leaves it.

Components:
- cdefs: cffi declarations and kadm5/krb5 constants
- library: locating and opening the shared library
- memory: scoped, exactly-once release of native allocations
- context: the krb5 context and its helpers
- errors: status code to exception mapping
- conv: conversion between native structures and owned values
"""
