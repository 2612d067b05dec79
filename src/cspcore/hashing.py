from __future__ import annotations

import hashlib
import secrets


def submission_id(title: str, created_at: float) -> str:
    """Compute an opaque submission id as sub_ + blake2s(title, time, salt)[:12] hex.

    Parameters
    ----------
    title: str
        Paper title which may contain mixed case and punctuation.
    created_at: float
        Creation time in epoch seconds.

    Returns
    -------
    str
        Identifier of the form sub_XXXXXXXXXXXX
    """
    salt = secrets.token_hex(4)
    payload = f"{title.lower()}|{created_at:.6f}|{salt}".encode("utf-8")
    digest = hashlib.blake2s(payload).hexdigest()[:12]
    return f"sub_{digest}"
