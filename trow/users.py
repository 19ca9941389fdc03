"""Registry user accounts kept in an SQLite database."""

from __future__ import annotations

import base64
import os
import secrets
import sqlite3
from contextlib import closing
from dataclasses import dataclass

from cryptography.exceptions import InvalidKey
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

CREDENTIAL_LEN = 512

_SCHEME = "scrypt"
_LOG_N = 14
_BLOCK_SIZE = 8
_PARALLELISM = 1
_KEY_LEN = 32

_CREATE_TABLE = """
create table if not exists users (
    id integer primary key,
    name text not null unique,
    salt text not null,
    hash text not null,
    active integer default 1 not null
)
"""


@dataclass
class User:
    """A registry account as stored in the database."""

    name: str
    salt: str
    hash: str
    active: int = 1


class InvalidCredentials(Exception):
    """The user does not exist or the password does not match."""


def generate_salt() -> bytes:
    """Random salt of CREDENTIAL_LEN bytes."""
    return secrets.token_bytes(CREDENTIAL_LEN)


def _b64encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii").rstrip("=")


def _b64decode(text: str) -> bytes:
    return base64.b64decode(text + "=" * (-len(text) % 4), validate=True)


def _kdf(salt: bytes, log_n: int, block_size: int, parallelism: int, length: int) -> Scrypt:
    return Scrypt(salt=salt, length=length, n=1 << log_n, r=block_size, p=parallelism)


def hash_password(password: str, salt: bytes) -> str:
    """Derive a self-describing encoded hash of ``password`` with ``salt``."""
    key = _kdf(salt, _LOG_N, _BLOCK_SIZE, _PARALLELISM, _KEY_LEN).derive(password.encode())
    params = f"ln={_LOG_N},r={_BLOCK_SIZE},p={_PARALLELISM}"
    return f"${_SCHEME}${params}${_b64encode(salt)}${_b64encode(key)}"


def _parse_params(text: str) -> dict[str, int]:
    params: dict[str, int] = {}
    for item in text.split(","):
        key, sep, value = item.partition("=")
        if not sep or not value.isdigit():
            raise ValueError(f"malformed hash parameter {item!r}")
        params[key] = int(value)
    missing = {"ln", "r", "p"} - params.keys()
    if missing:
        raise ValueError(f"hash parameters missing: {', '.join(sorted(missing))}")
    return params


def verify_password(password: str, encoded: str) -> bool:
    """Check ``password`` against an encoded hash; an empty hash never matches."""
    if not encoded:
        return False
    parts = encoded.split("$")
    if len(parts) != 5 or parts[0] or parts[1] != _SCHEME:
        raise ValueError("malformed password hash")
    params = _parse_params(parts[2])
    salt = _b64decode(parts[3])
    expected = _b64decode(parts[4])
    kdf = _kdf(salt, params["ln"], params["r"], params["p"], len(expected))
    try:
        kdf.verify(password.encode(), expected)
    except InvalidKey:
        return False
    return True


class UserStore:
    """User accounts in an SQLite file, by default ``$DB_FILE`` or ``sqlite.db``."""

    def __init__(self, db_file: str | os.PathLike[str] | None = None) -> None:
        self.db_file = (
            db_file if db_file is not None else os.environ.get("DB_FILE", "sqlite.db")
        )

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_file)
        conn.execute(_CREATE_TABLE)
        return conn

    def create(self, username: str, password: str) -> User:
        """Store a new user; raise sqlite3.IntegrityError if the name is taken."""
        salt = generate_salt()
        user = User(
            name=username,
            salt=salt.hex().upper(),
            hash=hash_password(password, salt),
        )
        with closing(self._connect()) as conn, conn:
            conn.execute(
                "INSERT INTO users (name, salt, hash, active) VALUES (?, ?, ?, ?)",
                (user.name, user.salt, user.hash, user.active),
            )
        return user

    def authorize(self, username: str, password: str) -> User:
        """Return the user if the password matches; raise InvalidCredentials otherwise."""
        with closing(self._connect()) as conn:
            row = conn.execute(
                "SELECT name, salt, hash, active FROM users WHERE name = ? LIMIT 1",
                (username,),
            ).fetchone()
        user = User(*row) if row is not None else User(name="", salt="", hash="", active=0)
        if not verify_password(password, user.hash):
            raise InvalidCredentials("Invalid Credentials")
        return user

    def delete(self, username: str) -> None:
        """Remove the user; removing an unknown user is not an error."""
        with closing(self._connect()) as conn, conn:
            conn.execute("DELETE FROM users WHERE name = ?", (username,))