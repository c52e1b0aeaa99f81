"""
Source Transforms
=================

Per-source rewrites applied to feed items before generic processing.

A source names its transform through its ``hook`` column. The registry
maps that name to a function taking a FeedItem and returning a rewritten
copy; unknown or missing names resolve to the identity transform.
"""

import re
from dataclasses import replace
from typing import Callable, Dict, Optional

from campusnews.ingestion.feed_manager import Enclosure, FeedItem

NewsTransform = Callable[[FeedItem], FeedItem]

NEWSPREAD_HOOK = "newspread"
IMPULSIV_HOOK = "impulsiv"
LEGACY_IMPULSIV_HOOK = "impulsivHook"

NEWSPREAD_IMAGE_PATTERN = re.compile(
    r"https://storage\.googleapis\.com/tum-newspread-de/assets/[a-z\-0-9]+\.jpeg"
)
ISSUE_NUMBER_PATTERN = re.compile(r"[0-9]+")


def identity_transform(item: FeedItem) -> FeedItem:
    return item


def newspread_transform(item: FeedItem) -> FeedItem:
    """Move the image embedded in the content body into the enclosure list.

    The enclosure list is always replaced, with an empty URL when the body
    holds no bucket image. The description is cleared either way.
    """
    match = NEWSPREAD_IMAGE_PATTERN.search(item.content or "")
    image_url = match.group(0) if match else ""
    return replace(item, enclosures=[Enclosure(url=image_url)], description="")


def impulsiv_transform(item: FeedItem) -> FeedItem:
    """Prefix titles with the magazine name; bare numbers become issue titles."""
    if ISSUE_NUMBER_PATTERN.fullmatch(item.title):
        title = f"Impulsiv - Ausgabe {item.title}"
    else:
        title = f"Impulsiv - {item.title}"
    return replace(item, title=title)


class TransformRegistry:
    """Dispatch table from hook name to transform."""

    def __init__(self, transforms: Optional[Dict[str, NewsTransform]] = None):
        self._transforms: Dict[str, NewsTransform] = dict(transforms or {})

    def register(self, hook: str, transform: NewsTransform) -> None:
        self._transforms[hook] = transform

    def get(self, hook: Optional[str]) -> NewsTransform:
        """Transform for ``hook``, or the identity transform."""
        if not hook:
            return identity_transform
        return self._transforms.get(hook, identity_transform)

    def apply(self, hook: Optional[str], item: FeedItem) -> FeedItem:
        return self.get(hook)(item)

    def __contains__(self, hook: object) -> bool:
        return hook in self._transforms


def default_registry() -> TransformRegistry:
    """Registry with the built-in source transforms."""
    return TransformRegistry(
        {
            NEWSPREAD_HOOK: newspread_transform,
            IMPULSIV_HOOK: impulsiv_transform,
            LEGACY_IMPULSIV_HOOK: impulsiv_transform,
        }
    )
