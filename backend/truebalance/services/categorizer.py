"""Keyword-based transaction categorization."""
from typing import List, Tuple

OTHER = "other"

# Checked in order; the first category with a matching keyword wins.
CATEGORY_KEYWORDS: List[Tuple[str, Tuple[str, ...]]] = [
    ("food", (
        "restaurant", "cafe", "food", "starbucks", "mcdonald", "pizza",
        "grocery", "market", "whole foods",
    )),
    ("transportation", (
        "gas", "fuel", "uber", "lyft", "taxi", "parking", "transit",
        "subway", "bus",
    )),
    ("shopping", (
        "amazon", "walmart", "target", "shopping", "retail",
    )),
    ("housing", (
        "rent", "mortgage", "utilities", "electric", "water", "internet",
        "cable", "phone",
    )),
    ("entertainment", (
        "entertainment", "movie", "netflix", "spotify", "gaming", "gym",
        "fitness", "subscription",
    )),
    ("healthcare", (
        "medical", "doctor", "pharmacy", "hospital", "health", "dental",
    )),
]

CATEGORIES = [name for name, _ in CATEGORY_KEYWORDS] + [OTHER]


def categorize(description: str) -> str:
    """
    Map a transaction description to a spending category.

    Matching is a case-insensitive substring search. No match yields "other".
    """
    desc = (description or "").lower()
    for category, keywords in CATEGORY_KEYWORDS:
        if any(keyword in desc for keyword in keywords):
            return category
    return OTHER
