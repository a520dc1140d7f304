"""
Tests for clc_cold.session — the plaintext session file and its handle.
"""

from __future__ import annotations

import os
import stat

import pytest

from clc_cold.errors import SessionExistsError, SessionNotFoundError, WalletFormatError
from clc_cold.session import SessionStore, WalletSession, atomic_write
from clc_cold.wallet import Wallet

SECRET_A = "1" * 64


class TestSessionStore:
    def test_missing(self, store):
        assert not store.exists()
        with pytest.raises(SessionNotFoundError):
            store.load()

    def test_save_and_load(self, store):
        store.save(b'{"1":"ab"}')
        assert store.exists()
        assert store.load() == b'{"1":"ab"}'

    def test_save_overwrites(self, store):
        store.save(b"first")
        store.save(b"second")
        assert store.load() == b"second"

    def test_save_is_private(self, store):
        store.save(b"{}")
        assert stat.S_IMODE(os.stat(store.path).st_mode) == 0o600

    def test_save_leaves_no_temp_files(self, store):
        store.save(b"{}")
        assert os.listdir(store.path.parent) == [store.path.name]

    def test_save_creates_parent(self, tmp_path):
        store = SessionStore(tmp_path / "nested" / "dir" / "ses")
        store.save(b"{}")
        assert store.exists()

    def test_delete(self, store):
        store.save(b"{}")
        store.delete()
        assert not store.exists()

    def test_delete_absent_is_silent(self, store):
        store.delete()

    def test_delete_propagates_other_errors(self, tmp_path):
        (tmp_path / "ses").mkdir()
        store = SessionStore(tmp_path / "ses")
        with pytest.raises(OSError):
            store.delete()

    def test_directory_is_not_a_session(self, tmp_path):
        (tmp_path / "ses").mkdir()
        assert not SessionStore(tmp_path / "ses").exists()

    def test_expands_user(self, monkeypatch, tmp_path):
        monkeypatch.setenv("HOME", str(tmp_path))
        assert SessionStore("~/.clc-cold-ses").path == tmp_path / ".clc-cold-ses"


class TestAtomicWrite:
    def test_writes_bytes(self, tmp_path):
        target = tmp_path / "w.wallet"
        atomic_write(target, b"token")
        assert target.read_bytes() == b"token"

    def test_failed_write_keeps_old_file(self, tmp_path, monkeypatch):
        target = tmp_path / "w.wallet"
        target.write_bytes(b"old")

        def boom(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr(os, "replace", boom)
        with pytest.raises(OSError):
            atomic_write(target, b"new")
        assert target.read_bytes() == b"old"
        assert os.listdir(tmp_path) == ["w.wallet"]


class TestWalletSession:
    def test_open_requires_session(self, store):
        with pytest.raises(SessionNotFoundError):
            WalletSession.open(store)

    def test_open_parses(self, store):
        store.save(Wallet({4: SECRET_A}).serialize())
        session = WalletSession.open(store)
        assert session.wallet.get(4) == SECRET_A

    def test_open_rejects_corrupt_session(self, store):
        store.save(b"garbage")
        with pytest.raises(WalletFormatError):
            WalletSession.open(store)

    def test_create_writes_session(self, store):
        WalletSession.create(store, Wallet({1: SECRET_A}))
        assert Wallet.parse(store.load()) == Wallet({1: SECRET_A})

    def test_create_refuses_second_session(self, store):
        store.save(b"{}")
        with pytest.raises(SessionExistsError):
            WalletSession.create(store, Wallet({1: SECRET_A}))
        assert store.load() == b"{}"

    def test_commit(self, store):
        store.save(b"{}")
        session = WalletSession.open(store)
        session.wallet.add(9, SECRET_A)
        assert store.load() == b"{}"
        session.commit()
        assert 9 in Wallet.parse(store.load())

    def test_close(self, store):
        store.save(Wallet({1: SECRET_A}).serialize())
        session = WalletSession.open(store)
        session.close()
        assert not store.exists()
        assert len(session.wallet) == 0
