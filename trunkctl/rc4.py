"""RC4-based MS authentication challenge and response (ETSI TS 102 361-4, 6.4.8)."""

from __future__ import annotations

import random

PERM = 256
MAX_CHALLENGE = 0xFFFCDF
KEYSTREAM_LENGTH = 259


def ksa(key: bytes) -> list[int]:
    """Run the RC4 key-scheduling algorithm and return the state permutation."""
    key = bytes(key)
    if not key:
        raise ValueError("RC4 key must not be empty")
    state = list(range(PERM))
    j = 0
    for i in range(PERM):
        j = (j + state[i] + key[i % len(key)]) % PERM
        state[i], state[j] = state[j], state[i]
    return state


def prga(state: list[int], data: bytes) -> bytes:
    """XOR data with the RC4 keystream generated from a copy of state."""
    s = list(state)
    if len(s) != PERM:
        raise ValueError(f"RC4 state must hold {PERM} entries")
    i = j = 0
    out = bytearray()
    for byte in bytes(data):
        i = (i + 1) % PERM
        j = (j + s[i]) % PERM
        s[i], s[j] = s[j], s[i]
        out.append(byte ^ s[(s[i] + s[j]) % PERM])
    return bytes(out)


def challenge_response(key: bytes, challenge: int) -> int:
    """Expected 24-bit response of an MS holding key to the given challenge."""
    if not 0 <= challenge <= 0xFFFFFF:
        raise ValueError("challenge must be a 24-bit unsigned integer")
    state = ksa(challenge.to_bytes(3, "big") + bytes(key))
    keystream = prga(state, bytes(KEYSTREAM_LENGTH))
    return int.from_bytes(keystream[256:259], "big")


def get_challenge_response(key: bytes) -> tuple[int, int]:
    """Pick a random challenge and return it with the expected response."""
    challenge = min(random.getrandbits(24), MAX_CHALLENGE)
    return challenge, challenge_response(key, challenge)