"""Upload URL signing.

The control plane signs a deployment id with its own secret when it issues
an upload slot and verifies the same signature when the artifact arrives.
Keys are derived per key id, so a signature minted for one deployment never
verifies for another.
"""

import hashlib
import hmac

from src.cars.core.config import get_settings

_PROTOCOL = b"url signing"


class SignatureService:
    """HMAC-SHA256 signer keyed by the operator secret and a key id."""

    def __init__(self, secret: str):
        self._secret = secret.encode()

    def _derive_key(self, key_id: str) -> bytes:
        return hmac.new(self._secret, _PROTOCOL + b":" + key_id.encode(), hashlib.sha256).digest()

    def sign(self, payload: str, key_id: str) -> str:
        """Return the hex signature of payload under the key derived for key_id."""
        return hmac.new(self._derive_key(key_id), payload.encode(), hashlib.sha256).hexdigest()

    def verify(self, payload: str, signature: str, key_id: str) -> bool:
        """Constant-time check. Malformed signatures simply fail."""
        expected = self.sign(payload, key_id)
        return hmac.compare_digest(expected.encode(), signature.lower().encode())


def get_signature_service() -> SignatureService:
    return SignatureService(get_settings().url_signing_secret)
