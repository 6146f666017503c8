"""Place classification and display annotation for points of interest."""

from enum import Enum
from typing import Dict, Optional
from urllib.parse import quote

from .geodesy import format_distance, haversine_distance
from .models import Coordinate, Place, PlaceRecord


class Category(str, Enum):
    RESTAURANT = 'restaurant'
    CAFE = 'cafe'
    ENTERTAINMENT = 'entertainment'
    OTHER = 'other'

    @property
    def image_offset(self) -> int:
        if self is Category.RESTAURANT:
            return 0
        if self is Category.CAFE:
            return 1
        if self is Category.ENTERTAINMENT:
            return 2
        if self is Category.OTHER:
            return 3
        raise ValueError(f"No image offset for category {self!r}")

    @property
    def image_suffix(self) -> str:
        if self is Category.RESTAURANT:
            return '4c7edcad34c4'
        if self is Category.CAFE:
            return 'ac426a4a7cbb'
        if self is Category.ENTERTAINMENT:
            return '7a4b6ad7a6c3'
        if self is Category.OTHER:
            return '444d633d7365'
        raise ValueError(f"No image suffix for category {self!r}")


# Checked in order; the first family with a matching keyword wins.
CATEGORY_KEYWORDS = (
    (Category.RESTAURANT, ('restaurant', 'food', 'bar', 'pub')),
    (Category.CAFE, ('cafe', 'coffee')),
    (Category.ENTERTAINMENT, ('entertainment', 'cinema', 'theatre', 'theater', 'nightclub', 'arts_centre', 'museum')),
)

IMAGE_BASE_ID = 1517248135467
IMAGE_INDEX_STEP = 10000
IMAGE_ID_MODULUS = 10 ** 12
IMAGE_URL_TEMPLATE = (
    "https://images.unsplash.com/photo-{bucket}-{suffix}"
    "?w=500&auto=format&fit=crop&q=60&ixlib=rb-4.0.3"
)

PRICE_LEVEL_LABELS = {0: 'Free', 1: '$', 2: '$$', 3: '$$$', 4: '$$$$'}
DEFAULT_PRICE_LABEL = '$$'


def classify(raw_tag: Optional[str]) -> Category:
    """Map a raw amenity/type tag onto a Category (case-sensitive substring match)."""
    if not raw_tag:
        return Category.OTHER
    for category, keywords in CATEGORY_KEYWORDS:
        if any(keyword in raw_tag for keyword in keywords):
            return category
    return Category.OTHER


def image_bucket(category: Category, index: int) -> int:
    """Deterministic placeholder photo id for the index-th place of a category."""
    base = (IMAGE_BASE_ID + index * IMAGE_INDEX_STEP) % IMAGE_ID_MODULUS
    return base + category.image_offset


def image_url(category: Category, index: int) -> str:
    return IMAGE_URL_TEMPLATE.format(bucket=image_bucket(category, index), suffix=category.image_suffix)


def price_level_label(level: Optional[int]) -> str:
    if level is None:
        return ''
    return PRICE_LEVEL_LABELS.get(level, DEFAULT_PRICE_LABEL)


def map_links(name: str, coordinates: Coordinate) -> Dict[str, str]:
    """Links that open a place in the device's maps app or on openstreetmap.org"""
    lat, lng = coordinates.lat, coordinates.lng
    return {
        'maps_app': f"maps:?q={quote(name, safe='')}&ll={lat},{lng}",
        'web': f"https://www.openstreetmap.org/?mlat={lat}&mlon={lng}&zoom=16",
    }


def annotate_place(record: PlaceRecord, midpoint: Coordinate, index: int) -> Place:
    category = classify(record.tag)
    return Place(
        id=record.id,
        name=record.name,
        type=record.type or record.tag,
        category=category.value,
        address=record.address,
        phone=record.phone,
        distance=format_distance(haversine_distance(midpoint, record.coordinates)),
        image_url=image_url(category, index),
        price_level=price_level_label(record.price_level),
        coordinates=record.coordinates,
        links=map_links(record.name, record.coordinates),
    )
