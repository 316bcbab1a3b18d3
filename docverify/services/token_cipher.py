"""Encryption of DigiLocker access tokens persisted on user records."""

from __future__ import annotations

import base64

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

_KEY_INFO = b"docverify/locker-access-token"


class LockerTokenCipher:
    """Seal and unseal access tokens with a Fernet key derived from a secret."""

    def __init__(self, *, secret: str) -> None:
        if not secret:
            raise ValueError("Token encryption secret must be provided.")
        derived = HKDF(
            algorithm=hashes.SHA256(),
            length=32,
            salt=None,
            info=_KEY_INFO,
        ).derive(secret.encode("utf-8"))
        self._fernet = Fernet(base64.urlsafe_b64encode(derived))

    def seal(self, access_token: str) -> str:
        return self._fernet.encrypt(access_token.encode("utf-8")).decode("ascii")

    def unseal(self, sealed: str) -> str:
        try:
            plaintext = self._fernet.decrypt(sealed.encode("ascii"))
        except (InvalidToken, UnicodeEncodeError) as exc:
            raise ValueError("Stored access token could not be decrypted.") from exc
        return plaintext.decode("utf-8")


__all__ = ["LockerTokenCipher"]
