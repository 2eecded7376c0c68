"""
Ed25519 signatures over board log entries.

The signed payload is the canonical JSON of the entry without its signature
field (see BoardLogEntry.signing_payload). Signatures travel base64-encoded.
"""

import base64
import binascii
import hashlib
import os

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)

from ..core.canonical import canonical_json_bytes
from ..core.errors import SignatureError
from ..core.models import BoardLogEntry


def _pubkey_id(public_key: Ed25519PublicKey) -> str:
    public_pem = public_key.public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return hashlib.sha256(public_pem).hexdigest()[:16]


class EntrySigner:
    """
    Ed25519 private key that signs log entries.

    Producers live outside the indexer; this exists for tooling and tests.
    """

    def __init__(self, private_key: Ed25519PrivateKey):
        self.private_key = private_key
        self.public_key = private_key.public_key()

    @classmethod
    def generate(cls) -> "EntrySigner":
        return cls(Ed25519PrivateKey.generate())

    @classmethod
    def load_from_file(cls, path: str) -> "EntrySigner":
        """
        Load private key from PEM file.

        Raises:
            FileNotFoundError: If key file doesn't exist
            ValueError: If key is not an Ed25519 private key
        """
        with open(path, "rb") as f:
            private_key = serialization.load_pem_private_key(f.read(), password=None)
        if not isinstance(private_key, Ed25519PrivateKey):
            raise ValueError("Key file is not Ed25519 private key")
        return cls(private_key)

    def save_to_file(self, path: str, public_path: str = None) -> None:
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        with open(path, "wb") as f:
            f.write(
                self.private_key.private_bytes(
                    encoding=serialization.Encoding.PEM,
                    format=serialization.PrivateFormat.PKCS8,
                    encryption_algorithm=serialization.NoEncryption(),
                )
            )
        if public_path:
            with open(public_path, "wb") as f:
                f.write(
                    self.public_key.public_bytes(
                        encoding=serialization.Encoding.PEM,
                        format=serialization.PublicFormat.SubjectPublicKeyInfo,
                    )
                )

    def sign_base64(self, entry: BoardLogEntry) -> str:
        signature = self.private_key.sign(canonical_json_bytes(entry.signing_payload()))
        return base64.b64encode(signature).decode("ascii")

    def get_pubkey_id(self) -> str:
        return _pubkey_id(self.public_key)


class EntryVerifier:
    """
    Checks entry signatures against one trusted Ed25519 public key.

    Instances are callables, so one can be passed straight to LogReplayer as
    its verifier.
    """

    def __init__(self, public_key: Ed25519PublicKey):
        self.public_key = public_key

    @classmethod
    def load_from_file(cls, path: str) -> "EntryVerifier":
        with open(path, "rb") as f:
            public_key = serialization.load_pem_public_key(f.read())
        if not isinstance(public_key, Ed25519PublicKey):
            raise ValueError("Key file is not Ed25519 public key")
        return cls(public_key)

    @classmethod
    def from_signer(cls, signer: EntrySigner) -> "EntryVerifier":
        return cls(signer.public_key)

    def is_valid(self, entry: BoardLogEntry) -> bool:
        if not entry.signature:
            return False
        try:
            signature = base64.b64decode(entry.signature, validate=True)
            self.public_key.verify(signature, canonical_json_bytes(entry.signing_payload()))
        except (binascii.Error, ValueError, InvalidSignature):
            return False
        return True

    def __call__(self, entry: BoardLogEntry) -> None:
        """
        Raises:
            SignatureError: If the entry is unsigned or the signature is invalid
        """
        if not self.is_valid(entry):
            raise SignatureError(
                f"invalid signature on entry seq={entry.seq_num} op={entry.operation}"
            )

    def get_pubkey_id(self) -> str:
        return _pubkey_id(self.public_key)
