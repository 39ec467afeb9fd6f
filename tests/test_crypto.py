"""Tests for sealing secrets at rest."""

from __future__ import annotations

import base64
import os

import pytest
from cryptography.exceptions import InvalidTag

from twofactor import crypto
from twofactor.config import Settings

SECRET = "JBSWY3DPEHPK3PXPJBSWY3DPEHPK3PXP"


@pytest.fixture
def key(monkeypatch):
    raw = crypto.generate_key()
    monkeypatch.setattr("twofactor.crypto.settings", Settings(_env_file=None, twofactor_master_key=raw))
    return raw


def test_seal_unseal(key):
    sealed = crypto.seal("u1", SECRET)
    assert sealed.startswith("v1:")
    assert SECRET not in sealed
    assert crypto.unseal("u1", sealed) == SECRET


def test_seal_uses_fresh_nonce(key):
    assert crypto.seal("u1", SECRET) != crypto.seal("u1", SECRET)


def test_sealed_value_bound_to_user(key):
    sealed = crypto.seal("u1", SECRET)
    with pytest.raises(InvalidTag):
        crypto.unseal("u2", sealed)


def test_unsealed_value_rejected(key):
    with pytest.raises(ValueError, match="not a sealed secret"):
        crypto.unseal("u1", SECRET)


def test_explicit_key_overrides_settings():
    k = crypto.load_key(crypto.generate_key())
    assert crypto.unseal("u1", crypto.seal("u1", "abc", key=k), key=k) == "abc"


def test_missing_key_raises(monkeypatch):
    monkeypatch.setattr("twofactor.crypto.settings", Settings(_env_file=None, twofactor_master_key=""))
    with pytest.raises(RuntimeError, match="TWOFACTOR_MASTER_KEY not set"):
        crypto.seal("u1", "test")


@pytest.mark.parametrize("raw", [base64.b64encode(os.urandom(16)).decode(), "not*base64"])
def test_bad_key_rejected(raw):
    with pytest.raises(ValueError):
        crypto.load_key(raw)
