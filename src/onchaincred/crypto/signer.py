"""Bundle signer: attests (user, merkle_root, timestamp) with an indexer key.

The signed message is

    keccak256(abi.encode(address user, bytes32 merkleRoot, uint256 timestamp))

signed as an EIP-191 personal message over the 32 raw hash bytes, the
same bytes ``ethers.Wallet.signMessage(arrayify(hash))`` signs. The
on-chain registry recovers the signer and checks it holds the indexer
role.

The key lives only inside a SigningCapability passed to ``sign``. The
signer itself holds no key, and keys are never logged.
"""

from __future__ import annotations

import logging
from typing import Iterable, Protocol, runtime_checkable

from eth_abi import encode as abi_encode
from eth_account import Account
from eth_account.messages import encode_defunct
from web3 import Web3

from onchaincred.crypto.hashing import to_bytes32
from onchaincred.models.score import CreditScore

logger = logging.getLogger(__name__)

MESSAGE_TYPES = ("address", "bytes32", "uint256")


class SigningFailure(Exception):
    """The signing capability rejected the request or errored."""


@runtime_checkable
class SigningCapability(Protocol):
    """A key-holding handle able to personal-sign a 32-byte hash."""

    @property
    def address(self) -> str:
        """Checksummed address of the signing key."""
        ...

    def sign_hash(self, message_hash: bytes) -> str:
        """Return the 65-byte signature as 0x-prefixed hex."""
        ...


class LocalKeySigner:
    """SigningCapability backed by an in-process private key."""

    def __init__(self, private_key: str) -> None:
        self._account = Account.from_key(private_key)

    @property
    def address(self) -> str:
        return self._account.address

    def sign_hash(self, message_hash: bytes) -> str:
        signed = self._account.sign_message(encode_defunct(primitive=message_hash))
        return Web3.to_hex(signed.signature)

    def __repr__(self) -> str:
        return f"LocalKeySigner(address={self.address})"


def score_message_hash(user_address: str, merkle_root: str, timestamp: int) -> bytes:
    """Hash of the tuple the indexer signs."""
    encoded = abi_encode(
        list(MESSAGE_TYPES),
        [Web3.to_checksum_address(user_address), to_bytes32(merkle_root), int(timestamp)],
    )
    return bytes(Web3.keccak(primitive=encoded))


class BundleSigner:
    """Signs score commitments and recovers their signers.

    Usage:
        signer = BundleSigner()
        signature = signer.sign(user, root, timestamp, LocalKeySigner(key))
        signer.recover_signer(user, root, timestamp, signature)  # key address
    """

    def sign(
        self,
        user_address: str,
        merkle_root: str,
        timestamp: int,
        capability: SigningCapability,
    ) -> str:
        """Sign the commitment. No retries: failures surface immediately."""
        if not isinstance(capability, SigningCapability):
            raise TypeError(
                f"capability must satisfy SigningCapability, got {type(capability)}"
            )
        message_hash = score_message_hash(user_address, merkle_root, timestamp)
        try:
            signature = capability.sign_hash(message_hash)
        except Exception as exc:
            raise SigningFailure(f"Signing capability failed: {exc}") from exc

        logger.debug("Signed score commitment for %s at %d", user_address, timestamp)
        return signature

    def recover_signer(
        self,
        user_address: str,
        merkle_root: str,
        timestamp: int,
        signature: str,
    ) -> str:
        """Return the checksummed address that produced ``signature``."""
        message_hash = score_message_hash(user_address, merkle_root, timestamp)
        return Account.recover_message(
            encode_defunct(primitive=message_hash), signature=signature,
        )

    def verify_bundle_signature(
        self,
        bundle: CreditScore,
        authorized_signers: Iterable[str],
    ) -> bool:
        """Check the bundle was signed by one of ``authorized_signers``.

        Fails closed on malformed signatures.
        """
        authorized = {a.lower() for a in authorized_signers}
        try:
            recovered = self.recover_signer(
                bundle.user_address,
                bundle.merkle_root,
                bundle.timestamp,
                bundle.indexer_signature,
            )
        except Exception as exc:
            logger.debug("Signature recovery failed for %s: %s", bundle.user_address, exc)
            return False
        return recovered.lower() in authorized
