"""
Read-only listing catalog.

The chat app depends on listings only through the ListingLookup protocol
below: existence, owner, title, price, thumbnail and sold flag, queried
by id. ListingCatalog is the ORM-backed implementation; tests and
alternative deployments can pass any object with the same methods.

Usage:
    from listings.catalog import ListingCatalog

    snapshot = ListingCatalog.get_listing(listing_id)
    if snapshot is None:
        ...

    # Bulk lookup for room lists
    by_id = ListingCatalog.get_listings([room.listing_id for room in rooms])
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol, runtime_checkable

from core.exceptions import NotFoundError
from core.helpers import validate_uuid


@dataclass(frozen=True)
class ListingSnapshot:
    """
    Immutable view of the listing fields chat needs.

    Decouples chat payloads from the Listing model so the catalog can be
    backed by something other than this database.
    """

    id: uuid.UUID
    owner_id: uuid.UUID
    title: str
    price: Decimal
    thumbnail_url: str | None
    is_sold: bool


@runtime_checkable
class ListingLookup(Protocol):
    """Protocol for listing catalogs."""

    def get_listing(self, listing_id: uuid.UUID | str) -> ListingSnapshot | None: ...

    def get_listings(
        self, listing_ids: Iterable[uuid.UUID | str]
    ) -> dict[uuid.UUID, ListingSnapshot]: ...


class ListingCatalog:
    """ORM-backed listing lookup. Never mutates listings."""

    @staticmethod
    def _to_snapshot(listing) -> ListingSnapshot:
        return ListingSnapshot(
            id=listing.id,
            owner_id=listing.owner_id,
            title=listing.title,
            price=listing.price,
            thumbnail_url=listing.thumbnail_url or None,
            is_sold=listing.is_sold,
        )

    @classmethod
    def get_listing(cls, listing_id: uuid.UUID | str) -> ListingSnapshot | None:
        """
        Look up a listing by id.

        Returns:
            The snapshot, or None if the id is malformed or unknown
        """
        from listings.models import Listing

        if not validate_uuid(listing_id):
            return None
        listing = Listing.objects.filter(pk=listing_id).first()
        return cls._to_snapshot(listing) if listing else None

    @classmethod
    def get_listings(
        cls, listing_ids: Iterable[uuid.UUID | str]
    ) -> dict[uuid.UUID, ListingSnapshot]:
        """Look up many listings in one query; unknown ids are omitted."""
        from listings.models import Listing

        ids = {str(value) for value in listing_ids if validate_uuid(value)}
        if not ids:
            return {}
        return {
            listing.id: cls._to_snapshot(listing)
            for listing in Listing.objects.filter(pk__in=ids)
        }

    @classmethod
    def require_listing(cls, listing_id: uuid.UUID | str) -> ListingSnapshot:
        """
        Look up a listing that must exist.

        Raises:
            NotFoundError: With error code LISTING_NOT_FOUND
        """
        snapshot = cls.get_listing(listing_id)
        if snapshot is None:
            raise NotFoundError(
                "Listing not found",
                error_code="LISTING_NOT_FOUND",
                details={"listing_id": str(listing_id)},
            )
        return snapshot
