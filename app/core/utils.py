"""
Utility functions for the application.
"""
from typing import Any, Dict, List, Optional
from datetime import datetime, timezone
from fastapi.encoders import jsonable_encoder
import secrets
import time

# Three-letter words used in human-shareable invite codes, e.g. "SKI-ROY-4827"
INVITE_WORDS = [
    "ACE", "ALP", "ARC", "ASH", "AXE", "BAY", "BIG", "BOW", "CAP", "COG",
    "CUB", "DAM", "DEN", "DIP", "DOC", "ELK", "ELM", "ERA", "EVE", "FAR",
    "FIG", "FIN", "FIR", "FLY", "FOG", "FOX", "FUR", "GAP", "GEM", "GLO",
    "HAM", "HEX", "HOP", "HUB", "ICE", "INK", "INN", "IVY", "JAB", "JAM",
    "JAW", "JAY", "JET", "JIG", "JOY", "KEY", "KIT", "LAP", "LOG", "LUX",
    "MAP", "MAX", "MIX", "MOB", "MUD", "NET", "NOD", "NUT", "OAK", "OAR",
    "ORB", "OWL", "PAD", "PEA", "PIN", "PLY", "POD", "POP", "PRO", "PUB",
    "RAY", "RED", "RIB", "RIM", "ROD", "ROT", "ROW", "ROY", "RUG", "RUN",
    "SAP", "SKI", "SKY", "SLY", "SPA", "SPY", "SUM", "SUN", "TAB", "TAN",
    "TAP", "TIN", "TIP", "TOP", "TOW", "TUG", "URN", "VAN", "VET", "VOW",
    "WAX", "WEB", "WIG", "WIN", "WIT", "YAK", "YAM", "YEW", "ZAP", "ZEN",
]

DEFAULT_DISPLAY_NAME = "Skier"

_BASE36 = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"


def generate_invite_code() -> str:
    """Generate a random invite code like SKI-ROY-4827."""
    word = secrets.choice(INVITE_WORDS)
    number = 1000 + secrets.randbelow(9000)
    return f"SKI-{word}-{number}"


def fallback_invite_code() -> str:
    """Time-derived invite code used once random codes keep colliding."""
    value = int(time.time() * 1000)
    digits = ""
    while value:
        value, rem = divmod(value, 36)
        digits = _BASE36[rem] + digits
    return f"SKI-{digits[-7:]}"


def sanitize_display_name(name: Optional[str]) -> str:
    """Trim, cap at 100 chars and strip angle brackets from a display name."""
    if not name or not name.strip():
        return DEFAULT_DISPLAY_NAME
    cleaned = name.strip()[:100].replace("<", "").replace(">", "")
    return cleaned or DEFAULT_DISPLAY_NAME


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Convert an aware datetime to naive UTC; naive values are assumed UTC."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def season_start(now: Optional[datetime] = None) -> datetime:
    """
    Start of the current ski season: November 1 of this year from November
    onwards, otherwise November 1 of the previous year.
    """
    now = now or datetime.utcnow()
    year = now.year if now.month >= 11 else now.year - 1
    return datetime(year, 11, 1)


def format_response(data: Optional[Dict[str, Any]] = None, **extra: Any) -> Dict[str, Any]:
    """Format a successful API response envelope."""
    payload = dict(data or {})
    payload.update(extra)
    return {"error": False, **jsonable_encoder(payload, by_alias=True)}


def format_error(message: str, details: Optional[List[Any]] = None) -> Dict[str, Any]:
    """Format an error response envelope."""
    response: Dict[str, Any] = {"error": True, "message": message}
    if details:
        response["details"] = details
    return response
