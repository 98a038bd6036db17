"""
pykadm5 Test Suite

Test organization:
- unit/: Unit tests for individual modules, run against the fake library
- property/: Property-based tests using Hypothesis
- fake_kadm5.py: In-process stand-in for libkadm5 with allocation tracking
"""
