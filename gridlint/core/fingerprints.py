"""
gridlint/core/fingerprints.py

Reduce a formula's relative-reference list to one comparable value.

Same offsets in the same order -> same fingerprint. Any other difference
(extra, missing, reordered or changed offset) changes the BLAKE2b digest.
"""

from __future__ import annotations

import hashlib
from typing import Iterable, List

from gridlint.core.vectors import Dictionary, Vector

_DIGEST_SIZE = 16

# Constants and other reference-free formulas all land here.
NO_REFERENCES = hashlib.blake2b(b"<no references>", digest_size=_DIGEST_SIZE, person=b"gridlint-none").hexdigest()


def fingerprint(vectors: Iterable[Vector]) -> str:
    h = hashlib.blake2b(digest_size=_DIGEST_SIZE, person=b"gridlint-refs")
    count = 0
    for v in vectors:
        h.update(v.as_key().encode("ascii"))
        h.update(b";")
        count += 1
    if count == 0:
        return NO_REFERENCES
    return h.hexdigest()


def fingerprints(refs: Dictionary[List[Vector]]) -> Dictionary[str]:
    out: Dictionary[str] = Dictionary()
    for key, vectors in refs.items():
        out.put(key, fingerprint(vectors))
    return out
