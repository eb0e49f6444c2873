"""Random identifiers and key material for projects and deployments."""

import re
import secrets

PRIVATE_KEY_PATTERN = re.compile(r"^[0-9a-f]{64}$")


def generate_external_id() -> str:
    """32 hex chars (16 random bytes), used for project and deployment handles."""
    return secrets.token_hex(16)


def generate_private_key() -> str:
    """64 hex chars of key material for a project's funding key."""
    return secrets.token_hex(32)


def generate_bearer_token() -> str:
    """64 hex chars; handed to the project backend as its admin credential."""
    return secrets.token_hex(32)


def is_valid_private_key(value: str) -> bool:
    return bool(PRIVATE_KEY_PATTERN.match(value))
