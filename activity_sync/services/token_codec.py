"""Cookie encoding for the Strava token bundle."""

from __future__ import annotations

import base64
import binascii
import hashlib
import json

from cryptography.fernet import Fernet, InvalidToken

from activity_sync.models.oauth import TokenBundle


class MalformedToken(ValueError):
    """Raised when a cookie value cannot be turned back into a token bundle."""


class TokenCodec:
    """Encode token bundles as opaque printable cookie values.

    Without a secret the value is base64 of the bundle JSON. With a secret the
    JSON is sealed with a Fernet key derived from it.
    """

    def __init__(self, *, secret: str | None = None) -> None:
        self._fernet: Fernet | None = None
        if secret:
            digest = hashlib.sha256(secret.encode("utf-8")).digest()
            self._fernet = Fernet(base64.urlsafe_b64encode(digest))

    def encode(self, bundle: TokenBundle) -> str:
        raw = json.dumps(bundle.model_dump(), separators=(",", ":")).encode("utf-8")
        if self._fernet is not None:
            return self._fernet.encrypt(raw).decode("utf-8")
        return base64.b64encode(raw).decode("ascii")

    def decode(self, value: str) -> TokenBundle:
        try:
            if self._fernet is not None:
                raw = self._fernet.decrypt(value.encode("utf-8"))
            else:
                raw = base64.b64decode(value.encode("ascii"), validate=True)
            return TokenBundle.model_validate(json.loads(raw.decode("utf-8")))
        except (InvalidToken, binascii.Error, ValueError) as exc:
            raise MalformedToken("Token cookie could not be decoded.") from exc


__all__ = ["MalformedToken", "TokenCodec"]
