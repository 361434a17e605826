"""
AURA Conversations — Message Tag Taxonomy
===========================================

Fixed classification of outbound message tags into funnel categories.

Every tag belongs to at most one category. Lookups go through TAG_CATEGORY,
a flat tag -> category mapping built once at import time.
"""
from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional


class TagCategory(str, Enum):
    START = "start"
    SECOND = "second"
    FINAL = "final"
    CLOSING = "closing"


START_TAGS = [
    "startMessage_A",
    "startMessage_B",
    "startMessage_C",
    "startMessage_D",
    "startMessage_E",
]
SECOND_TAGS = [
    "secondMessage_A",
    "secondMessage_B",
    "secondMessage_C",
    "secondMessage_D",
    "secondMessageFollowUp",
]
FINAL_TAGS = [
    "finalMessage_A",
    "finalMessage_B",
    "finalMessage_C",
    "finalMessage_D",
    "finalMessageFollowUp",
]
CLOSING_TAGS = [
    "goodByeMessage_afterLeadCreated",
    "goodByeMessage_afterJustContent",
    "goodByeMessage_afterNotInterested",
]

LEAD_CREATED_TAG = "goodByeMessage_afterLeadCreated"
PHONE_FOLLOW_UP_TAG = "phoneFollowUp"

TAGS_BY_CATEGORY: Dict[TagCategory, List[str]] = {
    TagCategory.START: START_TAGS,
    TagCategory.SECOND: SECOND_TAGS,
    TagCategory.FINAL: FINAL_TAGS,
    TagCategory.CLOSING: CLOSING_TAGS,
}

TAG_CATEGORY: Dict[str, TagCategory] = {
    tag: category
    for category, tags in TAGS_BY_CATEGORY.items()
    for tag in tags
}

ALL_TAGS: List[str] = [*START_TAGS, *SECOND_TAGS, *FINAL_TAGS, *CLOSING_TAGS, PHONE_FOLLOW_UP_TAG]

# Tags offered for conversion comparison: no follow-ups, no closing messages
CONVERSION_TAGS: Dict[TagCategory, List[str]] = {
    TagCategory.START: START_TAGS,
    TagCategory.SECOND: [t for t in SECOND_TAGS if not t.endswith("FollowUp")],
    TagCategory.FINAL: [t for t in FINAL_TAGS if not t.endswith("FollowUp")],
}

CONVERSION_CATEGORY_LABELS: Dict[TagCategory, str] = {
    TagCategory.START: "Start Messages",
    TagCategory.SECOND: "Second Messages",
    TagCategory.FINAL: "Final Messages",
}

TAG_LABELS: Dict[str, str] = {
    "startMessage_A": "Start A",
    "startMessage_B": "Start B",
    "startMessage_C": "Start C",
    "startMessage_D": "Start D",
    "startMessage_E": "Start E",
    "secondMessage_A": "Second A",
    "secondMessage_B": "Second B",
    "secondMessage_C": "Second C",
    "secondMessage_D": "Second D",
    "secondMessageFollowUp": "Second Follow-up",
    "finalMessage_A": "Final A",
    "finalMessage_B": "Final B",
    "finalMessage_C": "Final C",
    "finalMessage_D": "Final D",
    "finalMessageFollowUp": "Final Follow-up",
    "goodByeMessage_afterLeadCreated": "Lead Creado",
    "goodByeMessage_afterJustContent": "Solo Contenido",
    "goodByeMessage_afterNotInterested": "No Interesado",
    "phoneFollowUp": "Pedir Teléfono",
}


def category_of(tag: Optional[str]) -> Optional[TagCategory]:
    """Category for a tag, or None for untagged / uncategorised tags."""
    if not tag:
        return None
    return TAG_CATEGORY.get(tag)


def is_in_category(tag: Optional[str], *categories: TagCategory) -> bool:
    return category_of(tag) in categories


def tag_label(tag: str) -> str:
    return TAG_LABELS.get(tag, tag)


def parse_conversion_category(value) -> Optional[TagCategory]:
    """Conversion category for a value, or None when it has no conversion tags."""
    try:
        category = TagCategory(value)
    except ValueError:
        return None
    return category if category in CONVERSION_TAGS else None


def taxonomy() -> dict:
    """The full tag taxonomy as plain data, for API consumers."""
    return {
        "categories": {
            category.value: list(tags) for category, tags in TAGS_BY_CATEGORY.items()
        },
        "conversion_tags": {
            category.value: list(tags) for category, tags in CONVERSION_TAGS.items()
        },
        "conversion_category_labels": {
            category.value: label for category, label in CONVERSION_CATEGORY_LABELS.items()
        },
        "lead_tag": LEAD_CREATED_TAG,
        "labels": dict(TAG_LABELS),
        "all_tags": list(ALL_TAGS),
    }
