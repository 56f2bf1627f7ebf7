import logging
import re
from dataclasses import dataclass

from eth_account import Account
from eth_account.messages import encode_defunct
from eth_keys.exceptions import BadSignature
from eth_utils import keccak, to_checksum_address, to_hex
from eth_utils.exceptions import ValidationError as EthValidationError

from arcade_oracle.errors import ConfigurationError, SigningError

DIGEST_LENGTH = 32
PRIVATE_KEY_PATTERN = re.compile(r"^(0x)?[0-9a-fA-F]{64}$")


@dataclass(frozen=True)
class SignedAttestation:
    digest: bytes
    signature: str
    signer: str


def message_digest(message: bytes) -> bytes:
    """keccak256 of a canonical message, as the contract computes it."""
    return keccak(message)


def _personal_message(digest: bytes):
    if not isinstance(digest, (bytes, bytearray)) or len(digest) != DIGEST_LENGTH:
        raise SigningError(f"digest must be {DIGEST_LENGTH} bytes")
    # "\x19Ethereum Signed Message:\n32" + digest
    return encode_defunct(primitive=bytes(digest))


def validate_private_key(private_key: str) -> None:
    if not isinstance(private_key, str) or not PRIVATE_KEY_PATTERN.match(private_key):
        raise ConfigurationError("signer private key must be 32 bytes of hex")


class AttestationSigner:
    """Signs outcome digests with the operator key.

    One instance is built at startup and handed to the request handlers.
    """

    def __init__(self, private_key: str):
        validate_private_key(private_key)
        try:
            self._account = Account.from_key(private_key)
        except (ValueError, TypeError, EthValidationError) as e:
            raise ConfigurationError(f"Invalid signer private key: {e}") from e
        logging.info(f"Attestation signer loaded: {self._account.address}")

    @property
    def address(self) -> str:
        return self._account.address

    def sign_digest(self, digest: bytes) -> SignedAttestation:
        """Sign a 32-byte digest as an Ethereum personal message.

        Args:
            digest (bytes): keccak256 of the canonical message

        Raises:
            SigningError: digest is not 32 bytes

        Returns:
            SignedAttestation: 65-byte r||s||v signature as 0x-hex
        """
        signable = _personal_message(digest)
        signed = self._account.sign_message(signable)
        return SignedAttestation(
            digest=bytes(digest),
            signature=to_hex(bytes(signed.signature)),
            signer=self.address,
        )

    def sign_message(self, message: bytes) -> SignedAttestation:
        return self.sign_digest(message_digest(message))


def recover_signer(digest: bytes, signature: str) -> str:
    """Address that produced `signature` over `digest`."""
    signable = _personal_message(digest)
    try:
        return Account.recover_message(signable, signature=signature)
    except (ValueError, TypeError, EthValidationError, BadSignature) as e:
        raise SigningError(f"Malformed signature: {e}") from e


def verify(message: bytes, signature: str, expected_signer: str) -> bool:
    """True iff `signature` over keccak256(message) recovers to `expected_signer`."""
    try:
        recovered = recover_signer(message_digest(message), signature)
    except SigningError:
        return False
    return recovered == to_checksum_address(expected_signer)
