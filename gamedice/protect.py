"""Protection for the one secret the config stores (the Steam Web API key).

On Windows the value is sealed with DPAPI for the current user, matching what
other Windows tools do with per-user secrets. Other platforms use a Fernet key
derived from machine identity, so a copied config file is useless elsewhere.
"""
from __future__ import annotations

import base64
import hashlib
import logging
import platform
import sys
import uuid

from cryptography.fernet import Fernet, InvalidToken

_LOGGER = logging.getLogger(__name__)


def _dpapi(data: bytes, encrypt: bool) -> bytes:
    import ctypes
    from ctypes import wintypes

    class DATA_BLOB(ctypes.Structure):
        _fields_ = [
            ("cbData", wintypes.DWORD),
            ("pbData", ctypes.POINTER(ctypes.c_char)),
        ]

    CRYPTPROTECT_UI_FORBIDDEN = 0x01

    buffer = ctypes.create_string_buffer(data, len(data))
    blob_in = DATA_BLOB(len(data), ctypes.cast(buffer, ctypes.POINTER(ctypes.c_char)))
    blob_out = DATA_BLOB()

    crypt32 = ctypes.windll.crypt32  # type: ignore[attr-defined]
    kernel32 = ctypes.windll.kernel32  # type: ignore[attr-defined]
    if encrypt:
        ok = crypt32.CryptProtectData(
            ctypes.byref(blob_in), None, None, None, None, CRYPTPROTECT_UI_FORBIDDEN, ctypes.byref(blob_out)
        )
    else:
        ok = crypt32.CryptUnprotectData(
            ctypes.byref(blob_in), None, None, None, None, CRYPTPROTECT_UI_FORBIDDEN, ctypes.byref(blob_out)
        )
    if not ok:
        raise OSError(ctypes.GetLastError(), "DPAPI call failed")
    try:
        return ctypes.string_at(blob_out.pbData, blob_out.cbData)
    finally:
        kernel32.LocalFree(blob_out.pbData)


def _machine_fernet() -> Fernet:
    machine_id = f"{uuid.getnode()}{platform.node()}".encode("utf-8")
    key = base64.urlsafe_b64encode(hashlib.sha256(machine_id).digest())
    return Fernet(key)


def protect(secret: str) -> str:
    if not secret or not secret.strip():
        return ""
    raw = secret.encode("utf-8")
    if sys.platform.startswith("win"):
        return base64.b64encode(_dpapi(raw, encrypt=True)).decode("ascii")
    return _machine_fernet().encrypt(raw).decode("ascii")


def unprotect(token: str) -> str:
    if not token or not token.strip():
        return ""
    try:
        if sys.platform.startswith("win"):
            return _dpapi(base64.b64decode(token), encrypt=False).decode("utf-8")
        return _machine_fernet().decrypt(token.encode("ascii")).decode("utf-8")
    except (OSError, ValueError, InvalidToken) as exc:
        _LOGGER.warning("Stored secret could not be unprotected: %s", exc)
        return ""


__all__ = ["protect", "unprotect"]
