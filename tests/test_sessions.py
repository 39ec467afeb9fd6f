"""Tests for pending-challenge slots."""

from __future__ import annotations

from twofactor.sessions import ChallengeSessions


def test_open_and_get(clock):
    sessions = ChallengeSessions(ttl_s=300, clock=clock)
    challenge = sessions.open("u1")
    assert challenge.user_id == "u1"
    assert sessions.get(challenge.token) is challenge


def test_tokens_are_unique_per_open(clock):
    sessions = ChallengeSessions(ttl_s=300, clock=clock)
    a = sessions.open("u1")
    b = sessions.open("u1")
    assert a.token != b.token
    assert len(sessions) == 2


def test_unknown_or_empty_token(clock):
    sessions = ChallengeSessions(ttl_s=300, clock=clock)
    assert sessions.get("nope") is None
    assert sessions.get("") is None
    assert sessions.get(None) is None


def test_clear(clock):
    sessions = ChallengeSessions(ttl_s=300, clock=clock)
    challenge = sessions.open("u1")
    sessions.clear(challenge.token)
    assert sessions.get(challenge.token) is None
    sessions.clear(challenge.token)  # idempotent


def test_expiry(clock):
    sessions = ChallengeSessions(ttl_s=300, clock=clock)
    challenge = sessions.open("u1")
    clock.now += 299
    assert sessions.get(challenge.token) is not None
    clock.now += 1
    assert sessions.get(challenge.token) is None
    assert len(sessions) == 0


def test_purge_expired(clock):
    sessions = ChallengeSessions(ttl_s=10, clock=clock)
    sessions.open("u1")
    clock.now += 5
    fresh = sessions.open("u2")
    clock.now += 6
    assert sessions.purge_expired() == 1
    assert sessions.get(fresh.token) is not None


def test_open_drops_expired_slots(clock):
    sessions = ChallengeSessions(ttl_s=300, clock=clock)
    sessions.open("u1")
    clock.now += 301
    sessions.open("u1")
    assert len(sessions) == 1


def test_take_returns_slot_once(clock):
    sessions = ChallengeSessions(ttl_s=300, clock=clock)
    challenge = sessions.open("u1")
    assert sessions.take(challenge.token) is challenge
    assert sessions.take(challenge.token) is None
    assert sessions.get(challenge.token) is None


def test_take_expired(clock):
    sessions = ChallengeSessions(ttl_s=300, clock=clock)
    challenge = sessions.open("u1")
    clock.now += 300
    assert sessions.take(challenge.token) is None
