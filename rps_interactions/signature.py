from __future__ import annotations

from nacl.exceptions import BadSignatureError
from nacl.signing import VerifyKey

from rps_interactions.errors import AuthenticationFailure, ConfigurationError

SIGNATURE_HEADER = "X-Signature-Ed25519"
TIMESTAMP_HEADER = "X-Signature-Timestamp"


class SignatureVerifier:
    """Ed25519 check of `timestamp + raw body` against the application's public key."""

    def __init__(self, *, public_key: str) -> None:
        if not public_key:
            raise ConfigurationError("PUBLIC_KEY is not configured")
        try:
            self._key = VerifyKey(bytes.fromhex(public_key))
        except ValueError as e:
            raise ConfigurationError("PUBLIC_KEY is not a valid Ed25519 key") from e

    def verify(self, *, signature: str | None, timestamp: str | None, body: bytes) -> None:
        if not signature or not timestamp:
            raise AuthenticationFailure("missing signature headers")
        try:
            self._key.verify(timestamp.encode() + body, bytes.fromhex(signature))
        except (BadSignatureError, ValueError) as e:
            raise AuthenticationFailure("invalid request signature") from e
