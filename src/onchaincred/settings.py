"""Indexer settings loaded from the environment.

- INDEXER_PRIVATE_KEY: hex private key for the bundle-signing capability.
- AUTHORIZED_SIGNERS: comma-separated addresses accepted as bundle
  signers (defaults to the indexer key's own address).

Values are read from ``.env`` at the project root when present;
variables already set in the process environment take precedence.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from onchaincred.crypto.signer import LocalKeySigner

ROOT = Path(__file__).resolve().parents[2]
DEFAULT_ENV_PATH = ROOT / ".env"


class SettingsError(Exception):
    """Required settings are missing or invalid."""


@dataclass(frozen=True)
class IndexerSettings:
    private_key: str
    authorized_signers: tuple[str, ...]

    def signing_capability(self) -> LocalKeySigner:
        return LocalKeySigner(self.private_key)

    def __repr__(self) -> str:
        return f"IndexerSettings(authorized_signers={self.authorized_signers})"


def load_settings(env_path: Optional[Path] = None) -> IndexerSettings:
    load_dotenv(env_path or DEFAULT_ENV_PATH)

    private_key = (os.getenv("INDEXER_PRIVATE_KEY") or "").strip()
    if not private_key:
        raise SettingsError("INDEXER_PRIVATE_KEY is not set")

    raw_signers = os.getenv("AUTHORIZED_SIGNERS") or ""
    signers = tuple(s.strip() for s in raw_signers.split(",") if s.strip())
    if not signers:
        try:
            signers = (LocalKeySigner(private_key).address,)
        except Exception as exc:
            raise SettingsError(f"INDEXER_PRIVATE_KEY is invalid: {exc}") from exc

    return IndexerSettings(private_key=private_key, authorized_signers=signers)
