"""
Django admin configuration for listings.
"""

from django.contrib import admin

from listings.models import Listing


@admin.register(Listing)
class ListingAdmin(admin.ModelAdmin):
    """Admin configuration for Listing model."""

    list_display = ("title", "owner", "price", "is_sold", "created_at")
    list_filter = ("is_sold", "created_at")
    search_fields = ("title", "owner__email", "id")
    ordering = ("-created_at",)
    raw_id_fields = ("owner",)
    readonly_fields = ("id", "created_at", "updated_at")
