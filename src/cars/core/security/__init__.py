"""Security utilities - bearer tokens, upload signing, key material."""

from src.cars.core.security.keys import (
    generate_bearer_token,
    generate_external_id,
    generate_private_key,
    is_valid_private_key,
)
from src.cars.core.security.signing import SignatureService, get_signature_service
from src.cars.core.security.tokens import create_access_token, decode_token

__all__ = [
    "SignatureService",
    "create_access_token",
    "decode_token",
    "generate_bearer_token",
    "generate_external_id",
    "generate_private_key",
    "get_signature_service",
    "is_valid_private_key",
]
