"""Store categories and the output schema requested for each one."""

from __future__ import annotations

from enum import Enum
from typing import Any

# Field name -> description shown to the model.  Nested dicts are objects.
BASE_SCHEMA: dict[str, Any] = {
    "storeName": "Store name (string or null)",
    "description": "Short summary of what the store or company offers (string or null)",
    "address": "Full postal address (string or null)",
    "phoneNumber": "Main phone number (string or null)",
    "businessHours": "Opening hours as written on the site (string or null)",
    "closedDays": "Regular closing days (string or null)",
    "websiteUrl": "Official website URL (string or null)",
    "features": ["Notable features or strengths (array of strings or [])"],
    "services": ["Main services or products offered (array of strings or [])"],
    "mainImageUrl": "Representative image URL, e.g. from og:image (string or null)",
    "socialLinks": {
        "twitter": "Twitter / X URL (string or null)",
        "instagram": "Instagram URL (string or null)",
        "facebook": "Facebook URL (string or null)",
        "line": "LINE account information (string or null)",
        "youtube": "YouTube channel URL (string or null)",
        "tiktok": "TikTok URL (string or null)",
    },
    "paymentMethods": ["Accepted payment methods (array of strings or [])"],
    "accessInfo": "Directions, nearest station and walking time (string or null)",
    "contactFormUrl": "Contact form page URL (string or null)",
    "representativeName": "Name of the owner or representative (string or null)",
    "establishmentDate": "Founding or opening date (string or null)",
}


class StoreCategory(str, Enum):
    GENERAL = "general"
    RESTAURANT = "restaurant"
    SALON = "salon"
    RETAIL = "retail"
    MEDICAL = "medical"

    @classmethod
    def parse(cls, value: str | None) -> "StoreCategory":
        """Map a caller-supplied string to a category; unknown values are ``GENERAL``."""
        if not value:
            return cls.GENERAL
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.GENERAL

    @property
    def extra_fields(self) -> dict[str, Any]:
        return _EXTRA_FIELDS[self]

    def schema(self) -> dict[str, Any]:
        """Base schema followed by this category's extra fields."""
        return {**BASE_SCHEMA, **self.extra_fields}


_EXTRA_FIELDS: dict[StoreCategory, dict[str, Any]] = {
    StoreCategory.GENERAL: {},
    StoreCategory.RESTAURANT: {
        "cuisine": ["Cuisine genres (array of strings or [])"],
        "menuHighlights": ["Signature or recommended dishes (array of strings or [])"],
        "priceRange": "Price range, e.g. 'lunch from 1,000 JPY' (string or null)",
        "reservationUrl": "Reservation page URL or how to book (string or null)",
        "hasTakeout": "Whether takeout is available (boolean or null)",
        "hasDelivery": "Whether delivery is available (boolean or null)",
        "seatInfo": "Seat count or private room information (string or null)",
    },
    StoreCategory.SALON: {
        "specialties": ["Treatments or styles the salon specialises in (array of strings or [])"],
        "stylistInfo": ["Stylist introductions (array of strings or [])"],
        "priceRange": "Price range of the main treatments (string or null)",
        "reservationUrl": "Booking system URL or how to book (string or null)",
        "hairCatalogUrl": "Hair catalogue page URL (string or null)",
    },
    StoreCategory.RETAIL: {
        "productCategories": ["Main product categories (array of strings or [])"],
        "brands": ["Brands carried (array of strings or [])"],
        "onlineStoreUrl": "Online store URL (string or null)",
        "returnPolicy": "Return and exchange policy (string or null)",
    },
    StoreCategory.MEDICAL: {
        "medicalDepartments": ["Medical departments (array of strings or [])"],
        "doctorInfo": ["Doctor introductions (array of strings or [])"],
        "insuranceAccepted": "Insurance coverage information (string or null)",
        "reservationInfo": "How to book, and whether booking is required (string or null)",
    },
}
