"""Remote token validation."""

from typing import Optional

import httpx


def is_valid_token(token: Optional[str], *, client: httpx.Client, url: str, timeout: float = 30) -> bool:
    """Ask the ShipKit API whether ``token`` is currently valid.

    Fails closed: any transport error, non-2xx status or malformed body
    counts as invalid. An empty token never reaches the network.
    """
    if not token:
        return False

    try:
        response = client.post(url, json={"token": token}, timeout=timeout)
        if not response.is_success:
            return False
        data = response.json()
    except (httpx.HTTPError, ValueError):
        return False

    if not isinstance(data, dict):
        return False
    return data.get("valid") is True
