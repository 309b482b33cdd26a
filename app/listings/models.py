"""
Listing model.

A listing is an item a seller offers on the marketplace. The chat app
only needs a handful of its fields (owner, title, price, thumbnail,
sold flag); everything else about listing management lives outside
this project.

Model Relationships:
    User (1) ──< Listing (owner)
"""

from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel


class Listing(UUIDPrimaryKeyMixin, BaseModel):
    """
    An item offered for sale.

    Fields:
        id: UUID primary key, embedded in chat room identifiers
        owner: The seller
        title: Short headline shown in room lists
        description: Free-form details
        price: Asking price
        thumbnail_url: First picture of the listing
        is_sold: Whether the item has been sold
    """

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="listings",
        help_text="Seller who owns this listing",
    )
    title = models.CharField(
        max_length=200,
        help_text="Listing headline",
    )
    description = models.TextField(
        blank=True,
        help_text="Listing details",
    )
    price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0"))],
        help_text="Asking price",
    )
    thumbnail_url = models.URLField(
        max_length=500,
        blank=True,
        help_text="URL of the listing's primary picture",
    )
    is_sold = models.BooleanField(
        default=False,
        db_index=True,
        help_text="Whether the item has been sold",
    )

    class Meta:
        db_table = "listings_listing"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["owner", "-created_at"], name="listing_owner_created_idx"),
        ]

    def __str__(self):
        return self.title
