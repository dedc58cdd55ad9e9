"""
Rate-limit identity resolution from request metadata.

A client-supplied device token wins when it looks sane; otherwise the
client is identified by IP, preferring the address reported by the proxy
chain over the transport peer.
"""

from typing import Mapping, NamedTuple, Optional

DEVICE_HEADER = "x-device-id"
MAX_DEVICE_ID_LENGTH = 128
FALLBACK_ADDRESS = "0.0.0.0"


class Identity(NamedTuple):
    """Opaque rate-limit key plus the raw identifier it was built from."""

    key: str
    raw: str


def _header(headers: Mapping[str, str], name: str) -> Optional[str]:
    value = headers.get(name)
    if value is None:
        # Plain dicts are case sensitive, Starlette headers are not
        value = headers.get(name.title())
    return value


def resolve_identity(
    headers: Mapping[str, str],
    client_host: Optional[str] = None,
) -> Identity:
    """
    Derive the rate-limit identity for a request.

    Never fails: with no usable metadata at all, every such request shares
    the `IP#0.0.0.0` identity.
    """
    device_id = _header(headers, DEVICE_HEADER)
    if device_id and len(device_id) <= MAX_DEVICE_ID_LENGTH:
        return Identity(f"DEVICE#{device_id}", device_id)

    address = None
    forwarded_for = _header(headers, "x-forwarded-for")
    if forwarded_for:
        address = forwarded_for.split(",")[0].strip()
    if not address:
        address = _header(headers, "x-real-ip")
    if not address:
        address = client_host
    if not address:
        address = FALLBACK_ADDRESS

    return Identity(f"IP#{address}", address)


def resolve_user_agent(headers: Mapping[str, str]) -> str:
    """User agent as sent by the client, stored with votes for auditing."""
    return _header(headers, "user-agent") or ""
