import pytest

import utils.login_codes as login_codes
from models import db
from models.login_code import LoginCode
from utils.login_codes import ACCEPTED, EXPIRED, REJECTED, DatabaseCodeStore, hash_code


@pytest.fixture
def store(app_ctx, clock):
    return DatabaseCodeStore(db, clock=clock)


def row_for(email):
    return db.session.execute(
        db.select(LoginCode).filter_by(email=email).execution_options(populate_existing=True)
    ).scalar_one_or_none()


def test_issue_persists_digest_expiry_and_budget(store, clock):
    code = store.issue("  Staff@School.org ")
    row = row_for("staff@school.org")
    assert row is not None
    assert row.code_hash == hash_code(code)
    assert row.code_hash != code
    assert row.attempts_left == 5
    assert row.expires_at == clock.now + store.ttl


def test_issue_then_verify_is_one_time(store):
    code = store.issue("a@b.com")
    assert store.verify("A@B.com", code) == ACCEPTED
    assert row_for("a@b.com") is None
    assert store.verify("a@b.com", code) == REJECTED


def test_wrong_codes_spend_attempts_then_lock_out(store, monkeypatch):
    monkeypatch.setattr(login_codes, "generate_code", lambda: "482913")
    store.issue("a@b.com")
    for remaining in range(4, -1, -1):
        assert store.verify("a@b.com", "000000") == REJECTED
        assert row_for("a@b.com").attempts_left == remaining

    assert store.verify("a@b.com", "482913") == REJECTED
    assert row_for("a@b.com") is None


def test_expired_code_reports_expired_and_is_removed(store, clock):
    code = store.issue("a@b.com")
    clock.advance(minutes=11)
    assert store.verify("a@b.com", code) == EXPIRED
    assert row_for("a@b.com") is None


def test_reissue_replaces_row(store, monkeypatch):
    codes = iter(["111111", "222222"])
    monkeypatch.setattr(login_codes, "generate_code", lambda: next(codes))
    store.issue("a@b.com")
    store.issue("a@b.com")
    assert LoginCode.query.count() == 1
    assert store.verify("a@b.com", "111111") == REJECTED
    assert store.verify("a@b.com", "222222") == ACCEPTED


def test_unknown_identity_is_rejected(store):
    assert store.verify("never-issued@x.com", "123456") == REJECTED


def test_issue_sweeps_stale_rows(store, clock):
    store.issue("old@b.com")
    clock.advance(hours=2)
    store.issue("new@b.com")
    assert [row.email for row in LoginCode.query.all()] == ["new@b.com"]


def test_purge_expired_respects_grace(store, clock):
    store.issue("old@b.com")
    clock.advance(minutes=30)
    store.issue("recent@b.com")
    clock.advance(minutes=45)
    assert store.purge_expired() == 1
    assert row_for("old@b.com") is None
    assert row_for("recent@b.com") is not None


def test_failed_commit_rolls_back_and_raises(store, monkeypatch):
    store.issue("a@b.com")

    def broken_commit():
        raise RuntimeError("database went away")

    monkeypatch.setattr(db.session, "commit", broken_commit)
    with pytest.raises(RuntimeError):
        store.verify("a@b.com", "000000")
    monkeypatch.undo()
    assert row_for("a@b.com").attempts_left == 5


def test_unencodable_code_is_a_mismatch(store, monkeypatch):
    monkeypatch.setattr(login_codes, "generate_code", lambda: "482913")
    store.issue("a@b.com")
    assert store.verify("a@b.com", "\ud800") == REJECTED
    assert row_for("a@b.com").attempts_left == 4
    assert store.verify("a@b.com", "482913") == ACCEPTED
