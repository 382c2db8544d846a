"""
Key and hashing helpers shared by addressing, validation and tooling.
"""
import re
import hashlib
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives import serialization

# Compressed SEC1 point, hex encoded.
PUBLIC_KEY_PATTERN = re.compile(r'^0[23][0-9A-Fa-f]{64}$')


def sha512(data) -> str:
    """Returns the hex encoded SHA-512 digest of a string or bytes."""
    if isinstance(data, str):
        data = data.encode('utf-8')
    return hashlib.sha512(data).hexdigest()


def hash_and_slice(data, length: int) -> str:
    """Returns the first `length` hex characters of the SHA-512 digest."""
    return sha512(data)[:length]


def generate_key_pair() -> tuple[ec.EllipticCurvePrivateKey, ec.EllipticCurvePublicKey]:
    """Generates an ECDSA private/public key pair (SECP256k1)."""
    private_key = ec.generate_private_key(ec.SECP256K1())
    public_key = private_key.public_key()
    return private_key, public_key


def serialize_public_key(public_key: ec.EllipticCurvePublicKey) -> str:
    """Serializes a public key into its compressed point hex string."""
    return public_key.public_bytes(
        encoding=serialization.Encoding.X962,
        format=serialization.PublicFormat.CompressedPoint
    ).hex()


def is_valid_public_key(public_key) -> bool:
    """
    Checks that a value is a well formed public key string.

    Only the textual format is checked; a key that passes here is
    never required to be a point on the curve.
    """
    if not isinstance(public_key, str):
        return False
    return PUBLIC_KEY_PATTERN.match(public_key) is not None
