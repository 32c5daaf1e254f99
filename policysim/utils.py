# MIT License
from __future__ import annotations
import hashlib, json
import math
from pydantic import BaseModel



def request_hash(request: BaseModel) -> str:
    """Compute a stable hash for a simulation request.

    Serialises the request to JSON (with sorted keys) and computes a
    SHA256 hash.  Callers use it as a memoisation key.

    Parameters
    ----------
    request:
        Any pydantic model, usually a :class:`~policysim.params.SimulationRequest`.

    Returns
    -------
    str
        Hexadecimal string representation of the hash.
    """
    req_json = request.model_dump(mode="json", exclude_none=True)
    # ensure deterministic key ordering
    payload = json.dumps(req_json, sort_keys=True).encode("utf-8")
    return hashlib.sha256(payload).hexdigest()


def clamp(value: float, lo: float, hi: float) -> float:
    """Clamp ``value`` into ``[lo, hi]``."""
    return max(lo, min(hi, value))


def round_half_up(value: float, ndigits: int = 0) -> float:
    """Round with halves going towards +inf rather than to even."""
    if not math.isfinite(value):
        return value
    factor = 10.0 ** ndigits
    return math.floor(value * factor + 0.5) / factor


def pct(fraction: float) -> float:
    """Convert a fraction to percent."""
    return fraction * 100.0
