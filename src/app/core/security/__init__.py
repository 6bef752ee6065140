from src.app.core.security.tokens import (
    ACCESS_TOKEN_TYPE,
    create_access_token,
    decode_token,
    hash_token,
    verify_token_hash,
)

__all__ = [
    "ACCESS_TOKEN_TYPE",
    "create_access_token",
    "decode_token",
    "hash_token",
    "verify_token_hash",
]
