"""Shared helper functions used by the HTTP adapters."""

from __future__ import annotations


def build_task_url(base_url: str, link: str) -> str:
    """Join a service base URL and a document link.

    Args:
        base_url: Service root, e.g. ``"http://deployer:18000"``.
        link: Document link, with or without a leading slash
            (e.g. ``"/deployer/remove-deployment/7f3a"``).

    Returns:
        The absolute document URL.  A *link* that is already absolute
        (``http://`` or ``https://``) is returned unchanged.

    Raises:
        ValueError: If *link* is empty.
    """
    if not link or not link.strip():
        msg = "Document link must be non-empty"
        raise ValueError(msg)
    if link.startswith(("http://", "https://")):
        return link
    return f"{base_url.rstrip('/')}/{link.lstrip('/')}"
