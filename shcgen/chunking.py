"""
SMART Health Card JWS Chunking

Splits a JWS too long for one QR code into balanced, ordered chunks.
"""

import math
from typing import List

from . import config


def chunk_token(
    token: str,
    single_limit: int = config.MAX_SINGLE_JWS_SIZE,
    chunk_limit: int = config.MAX_CHUNK_SIZE,
) -> List[str]:
    """
    Split a token into QR-sized chunks.

    A token within `single_limit` is returned whole. Otherwise the chunk
    count is the fewest chunks of at most `chunk_limit` characters, and the
    characters are spread evenly across them (only the last may be shorter).

    Concatenating the result in order always gives back the token.
    """
    if single_limit < 1 or chunk_limit < 1:
        raise ValueError("Chunk limits must be positive")

    if len(token) <= single_limit:
        return [token]

    chunk_count = math.ceil(len(token) / chunk_limit)
    chunk_size = math.ceil(len(token) / chunk_count)
    return [token[i:i + chunk_size] for i in range(0, len(token), chunk_size)]
