"""Dedup check against the links a source already has."""

from typing import AbstractSet


def is_duplicate(existing_links: AbstractSet[str], link: str) -> bool:
    """True if ``link`` is empty or already stored for the source.

    ``existing_links`` is a snapshot taken at the start of a run, so two
    items sharing a link inside the same fetch both pass.
    """
    if not link:
        return True
    return link in existing_links
