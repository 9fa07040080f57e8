"""
One-time login codes: generation, hashing, storage and verification.

A code is a 6-digit number bound to a normalized email. Only its SHA-256
digest is kept, alongside an expiry instant and a budget of wrong guesses.
Verification returns one of ACCEPTED, EXPIRED or REJECTED and is one-time:
an accepted code is removed immediately.

Two stores expose the same issue/verify/purge_expired operations:
CodeStore keeps entries in process memory, DatabaseCodeStore keeps them in
the login_codes table so several workers can share them.
"""
import hashlib
import hmac
import logging
import secrets
import threading
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone

from flask import current_app
from sqlalchemy.exc import IntegrityError

logger = logging.getLogger(__name__)

CODE_MIN = 100000
CODE_MAX = 999999
CODE_TTL_MINUTES = 10
MAX_ATTEMPTS = 5
SWEEP_THRESHOLD = 10000
SWEEP_GRACE_MINUTES = 60

ACCEPTED = "accepted"
EXPIRED = "expired"
REJECTED = "rejected"


def utcnow() -> datetime:
    """Naive UTC now, comparable with DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def generate_code() -> str:
    """Uniform 6-digit code in [100000, 999999] from the OS CSPRNG."""
    return str(CODE_MIN + secrets.randbelow(CODE_MAX - CODE_MIN + 1))


def hash_code(code: str) -> str:
    # surrogatepass: lone surrogates hash (and mismatch) like any other input
    return hashlib.sha256(code.encode('utf-8', 'surrogatepass')).hexdigest()


def codes_match(supplied_code: str, code_hash: str) -> bool:
    """Constant-time check of a supplied code against a stored digest."""
    return hmac.compare_digest(hash_code(supplied_code), code_hash)


class CodeEntry:
    """Pending code for one identity."""
    __slots__ = ('code_hash', 'expires_at', 'attempts_left')

    def __init__(self, code_hash, expires_at, attempts_left):
        self.code_hash = code_hash
        self.expires_at = expires_at
        self.attempts_left = attempts_left

    def __repr__(self):
        return f'<CodeEntry expires_at={self.expires_at:%Y-%m-%d %H:%M:%S} attempts_left={self.attempts_left}>'


class CodeStore:
    """
    In-process code store.

    Calls for the same identity are serialized by a per-identity lock, so a
    read-modify-write of attempts_left or a verify racing a re-issue always
    sees one generation of the entry. Calls for different identities only
    share a short guard lock around the dict itself.

    Expiry is checked lazily in verify(). To bound memory, issue() runs
    purge_expired() once the store holds sweep_threshold entries; the sweep
    only drops entries that expired more than sweep_grace ago so a recent
    expiry still reports EXPIRED.
    """

    def __init__(self, ttl=timedelta(minutes=CODE_TTL_MINUTES), max_attempts=MAX_ATTEMPTS,
                 clock=utcnow, sweep_threshold=SWEEP_THRESHOLD,
                 sweep_grace=timedelta(minutes=SWEEP_GRACE_MINUTES)):
        self.ttl = ttl
        self.max_attempts = max_attempts
        self.clock = clock
        self.sweep_threshold = sweep_threshold
        self.sweep_grace = sweep_grace
        self._entries = {}
        self._locks = {}  # email -> [Lock, holders]
        self._guard = threading.Lock()

    def __len__(self):
        with self._guard:
            return len(self._entries)

    @contextmanager
    def _identity_lock(self, email):
        with self._guard:
            slot = self._locks.get(email)
            if slot is None:
                slot = self._locks[email] = [threading.Lock(), 0]
            slot[1] += 1
        try:
            with slot[0]:
                yield
        finally:
            with self._guard:
                slot[1] -= 1
                if slot[1] == 0:
                    del self._locks[email]

    def _get(self, email):
        with self._guard:
            return self._entries.get(email)

    def _set(self, email, entry):
        with self._guard:
            self._entries[email] = entry

    def _delete(self, email):
        with self._guard:
            self._entries.pop(email, None)

    def issue(self, identity: str) -> str:
        """Create (or replace) the pending code for identity and return the plaintext."""
        email = normalize_email(identity)
        if self.sweep_threshold and len(self) >= self.sweep_threshold:
            self.purge_expired()

        code = generate_code()
        entry = CodeEntry(hash_code(code), self.clock() + self.ttl, self.max_attempts)
        with self._identity_lock(email):
            self._set(email, entry)
        logger.debug("Login code issued for %s", email)
        return code

    def verify(self, identity: str, supplied_code: str) -> str:
        """Check supplied_code for identity. Returns ACCEPTED, EXPIRED or REJECTED."""
        email = normalize_email(identity)
        with self._identity_lock(email):
            entry = self._get(email)
            if entry is None:
                return REJECTED

            if self.clock() > entry.expires_at:
                self._delete(email)
                logger.info("Login code for %s expired", email)
                return EXPIRED

            if entry.attempts_left <= 0:
                self._delete(email)
                return REJECTED

            if not codes_match(supplied_code, entry.code_hash):
                entry.attempts_left -= 1
                if entry.attempts_left == 0:
                    logger.warning("Login code attempts exhausted for %s", email)
                return REJECTED

            # one-time use
            self._delete(email)
            return ACCEPTED

    def purge_expired(self, now=None) -> int:
        """Drop entries that expired more than sweep_grace ago. Returns how many were removed."""
        cutoff = (now or self.clock()) - self.sweep_grace
        with self._guard:
            stale = [email for email, entry in self._entries.items() if entry.expires_at < cutoff]
            for email in stale:
                del self._entries[email]
        if stale:
            logger.info("Purged %d stale login codes", len(stale))
        return len(stale)


class DatabaseCodeStore:
    """
    Code store backed by the login_codes table.

    Each call is its own transaction. verify() reads the row with
    SELECT ... FOR UPDATE so concurrent workers are serialized per identity
    on databases with row locks.
    """

    def __init__(self, db, ttl=timedelta(minutes=CODE_TTL_MINUTES), max_attempts=MAX_ATTEMPTS,
                 clock=utcnow, sweep_grace=timedelta(minutes=SWEEP_GRACE_MINUTES)):
        self.db = db
        self.ttl = ttl
        self.max_attempts = max_attempts
        self.clock = clock
        self.sweep_grace = sweep_grace

    def _locked_row(self, email):
        from models.login_code import LoginCode
        stmt = (
            self.db.select(LoginCode)
            .filter_by(email=email)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return self.db.session.execute(stmt).scalar_one_or_none()

    def _delete_stale(self, now):
        from models.login_code import LoginCode
        cutoff = now - self.sweep_grace
        return LoginCode.query.filter(LoginCode.expires_at < cutoff).delete(synchronize_session="fetch")

    def issue(self, identity: str) -> str:
        from models.login_code import LoginCode
        email = normalize_email(identity)
        code = generate_code()
        session = self.db.session
        # A concurrent first insert for the same email can win the primary key; retry once as an update
        for attempt in range(2):
            now = self.clock()
            try:
                self._delete_stale(now)
                row = self._locked_row(email)
                if row is None:
                    row = LoginCode(email=email)
                    session.add(row)
                row.code_hash = hash_code(code)
                row.expires_at = now + self.ttl
                row.attempts_left = self.max_attempts
                row.created_at = now
                session.commit()
                logger.debug("Login code issued for %s", email)
                return code
            except IntegrityError:
                session.rollback()
                if attempt:
                    raise
            except Exception:
                session.rollback()
                raise

    def verify(self, identity: str, supplied_code: str) -> str:
        email = normalize_email(identity)
        session = self.db.session
        try:
            row = self._locked_row(email)
            if row is None:
                session.commit()
                return REJECTED

            if row.is_expired(self.clock()):
                session.delete(row)
                session.commit()
                logger.info("Login code for %s expired", email)
                return EXPIRED

            if row.attempts_left <= 0:
                session.delete(row)
                session.commit()
                return REJECTED

            if not codes_match(supplied_code, row.code_hash):
                row.attempts_left -= 1
                session.commit()
                return REJECTED

            session.delete(row)
            session.commit()
            return ACCEPTED
        except Exception:
            session.rollback()
            raise

    def purge_expired(self, now=None) -> int:
        try:
            removed = self._delete_stale(now or self.clock())
            self.db.session.commit()
        except Exception:
            self.db.session.rollback()
            raise
        if removed:
            logger.info("Purged %d stale login codes", removed)
        return removed


def build_code_store(app):
    """Create the app's code store from config and register it on app.extensions."""
    config = app.config
    backend = config.get("LOGIN_CODE_BACKEND", "memory")
    options = {
        "ttl": timedelta(minutes=config.get("LOGIN_CODE_TTL_MINUTES", CODE_TTL_MINUTES)),
        "max_attempts": config.get("LOGIN_CODE_MAX_ATTEMPTS", MAX_ATTEMPTS),
        "sweep_grace": timedelta(minutes=config.get("LOGIN_CODE_SWEEP_GRACE_MINUTES", SWEEP_GRACE_MINUTES)),
    }
    if backend == "database":
        from models import db
        store = DatabaseCodeStore(db, **options)
    elif backend == "memory":
        store = CodeStore(sweep_threshold=config.get("LOGIN_CODE_SWEEP_THRESHOLD", SWEEP_THRESHOLD), **options)
    else:
        raise RuntimeError(f"Unknown LOGIN_CODE_BACKEND {backend!r}; use 'memory' or 'database'.")
    app.extensions["login_codes"] = store
    return store


def get_code_store():
    """Code store of the current app (request or app context)."""
    return current_app.extensions["login_codes"]
