"""
Listings application.

Holds the marketplace listings that conversations are about. Chat code
treats this app as an external catalog: it looks listings up by id
through listings.catalog and never writes to them.

Usage:
    from listings.catalog import ListingCatalog

    snapshot = ListingCatalog.get_listing(listing_id)
"""
