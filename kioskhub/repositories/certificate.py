"""Storage of device certificates and refresh tokens."""

from __future__ import annotations

import sqlite3
from datetime import datetime, timedelta, timezone
from typing import Any

from kioskhub.models.certificate import DeviceCertificate, RefreshToken
from kioskhub.repositories.report import _from_db_time, _to_db_time
from kioskhub.repositories.tablet import _fetch


class CertificateNotFoundError(LookupError):
    """No certificate matches the request."""


class RefreshTokenNotFoundError(LookupError):
    """No refresh token matches the request."""


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _optional_time(moment: datetime | None) -> str | None:
    return None if moment is None else _to_db_time(moment)


def _to_certificate(row: dict[str, Any]) -> DeviceCertificate:
    return DeviceCertificate(
        id=row["id"],
        device_id=row["device_id"],
        certificate_pem=row["certificate_pem"] or "",
        serial_number=row["serial_number"] or "",
        issued_at=_from_db_time(row["issued_at"]),
        expires_at=_from_db_time(row["expires_at"]),
        revoked_at=_from_db_time(row.get("revoked_at")),
        revoked_reason=row.get("revoked_reason") or "",
    )


def _to_token(row: dict[str, Any]) -> RefreshToken:
    return RefreshToken(
        id=row["id"],
        device_id=row["device_id"],
        token_hash=row["token_hash"],
        issued_at=_from_db_time(row["issued_at"]),
        expires_at=_from_db_time(row["expires_at"]),
        revoked_at=_from_db_time(row.get("revoked_at")),
        previous_token_hash=row.get("previous_token_hash") or "",
    )


class CertificateRepository:
    """Device certificates kept in the ``device_certificates`` table."""

    def __init__(self, db: sqlite3.Connection) -> None:
        self._db = db

    def create(self, cert: DeviceCertificate) -> None:
        with self._db:
            self._db.execute(
                "INSERT INTO device_certificates "
                "(id, device_id, certificate_pem, serial_number, issued_at, expires_at) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (
                    cert.id,
                    cert.device_id,
                    cert.certificate_pem,
                    cert.serial_number,
                    _optional_time(cert.issued_at),
                    _optional_time(cert.expires_at),
                ),
            )

    def _get_one(self, query: str, value: str) -> DeviceCertificate:
        rows = _fetch(self._db.execute(query, (value,)))
        if not rows:
            raise CertificateNotFoundError(f"certificate not found: {value}")
        return _to_certificate(rows[0])

    def get_by_id(self, cert_id: str) -> DeviceCertificate:
        return self._get_one("SELECT * FROM device_certificates WHERE id = ?", cert_id)

    def get_by_device_id(self, device_id: str) -> DeviceCertificate:
        """Return the newest certificate of the device that is not revoked."""
        return self._get_one(
            "SELECT * FROM device_certificates WHERE device_id = ? AND revoked_at IS NULL "
            "ORDER BY issued_at DESC LIMIT 1",
            device_id,
        )

    def get_by_serial_number(self, serial_number: str) -> DeviceCertificate:
        return self._get_one(
            "SELECT * FROM device_certificates WHERE serial_number = ?", serial_number
        )

    def revoke(self, cert_id: str, reason: str) -> None:
        """Mark the certificate revoked now, with the reason given."""
        with self._db:
            cursor = self._db.execute(
                "UPDATE device_certificates SET revoked_at = ?, revoked_reason = ? WHERE id = ?",
                (_to_db_time(_now()), reason, cert_id),
            )
        if cursor.rowcount == 0:
            raise CertificateNotFoundError(f"certificate not found: {cert_id}")

    def delete(self, cert_id: str) -> None:
        with self._db:
            self._db.execute("DELETE FROM device_certificates WHERE id = ?", (cert_id,))

    def delete_by_device_id(self, device_id: str) -> None:
        with self._db:
            self._db.execute(
                "DELETE FROM device_certificates WHERE device_id = ?", (device_id,)
            )

    def get_expiring_soon(self, within: timedelta) -> list[DeviceCertificate]:
        """Return unrevoked certificates expiring within ``within``, soonest first."""
        cursor = self._db.execute(
            "SELECT * FROM device_certificates WHERE expires_at <= ? AND revoked_at IS NULL "
            "ORDER BY expires_at ASC",
            (_to_db_time(_now() + within),),
        )
        return [_to_certificate(row) for row in _fetch(cursor)]


class RefreshTokenRepository:
    """Refresh tokens kept in the ``refresh_tokens`` table, stored by hash."""

    def __init__(self, db: sqlite3.Connection) -> None:
        self._db = db

    def create(self, token: RefreshToken) -> None:
        with self._db:
            self._db.execute(
                "INSERT INTO refresh_tokens "
                "(id, device_id, token_hash, issued_at, expires_at, previous_token_hash) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (
                    token.id,
                    token.device_id,
                    token.token_hash,
                    _optional_time(token.issued_at),
                    _optional_time(token.expires_at),
                    token.previous_token_hash,
                ),
            )

    def _get_one(self, query: str, value: str) -> RefreshToken:
        rows = _fetch(self._db.execute(query, (value,)))
        if not rows:
            raise RefreshTokenNotFoundError(f"refresh token not found: {value}")
        return _to_token(rows[0])

    def get_by_token_hash(self, token_hash: str) -> RefreshToken:
        """Return the unrevoked token with this hash."""
        return self._get_one(
            "SELECT * FROM refresh_tokens WHERE token_hash = ? AND revoked_at IS NULL",
            token_hash,
        )

    def get_by_device_id(self, device_id: str) -> RefreshToken:
        """Return the newest unrevoked token of the device."""
        return self._get_one(
            "SELECT * FROM refresh_tokens WHERE device_id = ? AND revoked_at IS NULL "
            "ORDER BY issued_at DESC LIMIT 1",
            device_id,
        )

    def revoke(self, token_id: str) -> None:
        with self._db:
            cursor = self._db.execute(
                "UPDATE refresh_tokens SET revoked_at = ? WHERE id = ?",
                (_to_db_time(_now()), token_id),
            )
        if cursor.rowcount == 0:
            raise RefreshTokenNotFoundError(f"refresh token not found: {token_id}")

    def revoke_all_for_device(self, device_id: str) -> None:
        with self._db:
            self._db.execute(
                "UPDATE refresh_tokens SET revoked_at = ? "
                "WHERE device_id = ? AND revoked_at IS NULL",
                (_to_db_time(_now()), device_id),
            )

    def delete(self, token_id: str) -> None:
        with self._db:
            self._db.execute("DELETE FROM refresh_tokens WHERE id = ?", (token_id,))

    def delete_expired(self) -> int:
        """Delete expired or revoked tokens and return how many went."""
        with self._db:
            cursor = self._db.execute(
                "DELETE FROM refresh_tokens WHERE expires_at < ? OR revoked_at IS NOT NULL",
                (_to_db_time(_now()),),
            )
        return cursor.rowcount