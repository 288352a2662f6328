"""
Obfuscation codec for the State Document.

The transform is JSON -> repeating-key XOR -> base64. It is NOT encryption:
the key is fixed and shared by every document, so anyone holding one
plaintext/blob pair recovers the key stream for all documents of equal or
shorter length. It only keeps casual readers from seeing the data in
storage. Changing the transform changes the stored format; data written by
the current format would then need a versioned migration.
"""

from __future__ import annotations

import base64
import binascii
import json
from typing import Any, Optional

from common.log import get_logger

from .fallback import ChainResult, Hit, Miss, Strategy, run_chain
from .models import Document


DEFAULT_SECRET = "ByMoralesa"

STRATEGY_DECODE = "decode"
STRATEGY_LEGACY = "legacy"

log = get_logger(__name__)


def _xor(data: bytes, key: bytes) -> bytes:
    n = len(key)
    return bytes(b ^ key[i % n] for i, b in enumerate(data))


class ObfuscationCodec:
    """Reversible Document <-> text transform keyed by a process-wide secret."""

    def __init__(self, secret: str = DEFAULT_SECRET) -> None:
        if not secret:
            raise ValueError("secret is required")
        self._key = secret.encode("utf-8")

    def encode(self, document: Optional[Document]) -> str:
        if document is None:
            return ""
        # Compact, order-preserving, 7-bit JSON
        text = json.dumps(document, separators=(",", ":"), ensure_ascii=True)
        return base64.b64encode(_xor(text.encode("ascii"), self._key)).decode("ascii")

    def decode(self, blob: Optional[str]) -> Optional[Document]:
        """Recover a Document from `blob`, or None when it is not a valid blob."""
        if not blob:
            return None
        try:
            raw = base64.b64decode(blob.strip(), validate=True)
            # Existing blobs carry one byte per UTF-16 unit below 0x100
            parsed: Any = json.loads(_xor(raw, self._key).decode("latin-1"))
        except (binascii.Error, ValueError) as ex:
            # JSONDecodeError is a ValueError too
            log.debug("decode_miss", error=str(ex))
            return None
        if not isinstance(parsed, dict):
            log.debug("decode_miss", error="payload is not an object")
            return None
        return parsed


def parse_legacy(text: Optional[str]) -> Optional[Document]:
    """Read `text` as plaintext JSON written before encoding existed."""
    if not text:
        return None
    try:
        parsed = json.loads(text)
    except ValueError:
        return None
    return parsed if isinstance(parsed, dict) else None


def recover_document(codec: ObfuscationCodec, text: Optional[str]) -> ChainResult[Document]:
    """Decode `text`, else read it as legacy plaintext JSON."""

    def _decoded():
        doc = codec.decode(text)
        return Hit(doc) if doc is not None else Miss("not an encoded blob")

    def _legacy():
        doc = parse_legacy(text)
        return Hit(doc) if doc is not None else Miss("not a JSON object")

    return run_chain([Strategy(STRATEGY_DECODE, _decoded), Strategy(STRATEGY_LEGACY, _legacy)])


__all__ = [
    "ObfuscationCodec",
    "DEFAULT_SECRET",
    "STRATEGY_DECODE",
    "STRATEGY_LEGACY",
    "parse_legacy",
    "recover_document",
]
