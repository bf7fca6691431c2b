"""
Security Layer

Password hashing, token digests and account authentication for the
FileVault backend.
"""

# Cryptography
from .crypto import (
    Hasher,
    CryptoError,
    hash_password,
    verify_password,
    hash_token,
)

# Authentication
from .auth import (
    AuthenticationManager,
    AuthConfig,
    AuthenticationError,
    InvalidTokenError,
    RegistrationError,
    MAX_PASSWORD_BYTES,
)

__all__ = [
    # Crypto
    'Hasher',
    'CryptoError',
    'hash_password',
    'verify_password',
    'hash_token',

    # Authentication
    'AuthenticationManager',
    'AuthConfig',
    'AuthenticationError',
    'InvalidTokenError',
    'RegistrationError',
    'MAX_PASSWORD_BYTES',
]
