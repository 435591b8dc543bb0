"""
Duplicate Detection Service

Decides whether an incoming product is already in the master catalog.
Checks run in strict order and stop at the first hit:

    SKU (confidence 1.0) > handle (0.95) > fuzzy title (similarity, at least 0.85)

Read-only: nothing here writes to the database.
"""
import logging
import re
from typing import Optional

from multistore.models import Product
from multistore.schemas.duplicate import (
    DuplicateCheckInput,
    DuplicateCheckResult,
    DuplicateGroup,
    DuplicateMethod,
)
from multistore.schemas.product import Product as ProductSchema
from multistore.services.catalog_repository import ProductRepository, VariantRepository

logger = logging.getLogger(__name__)

SKU_CONFIDENCE = 1.0
HANDLE_CONFIDENCE = 0.95
TITLE_SIMILARITY_THRESHOLD = 0.85
MAX_TITLE_CANDIDATES = 50
MIN_KEYWORD_LENGTH = 3

STOP_WORDS = {
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for",
    "of", "with", "by", "from", "as", "is", "are", "was", "were", "be",
    "been", "being", "have", "has", "had", "do", "does", "did", "will",
    "would", "should", "can", "could", "may", "might", "must", "shall",
}


def normalize_title(title: str) -> str:
    """
    Normalize a title for comparison.

    Lowercases, collapses whitespace, then strips punctuation other than hyphens.

    Examples:
        "Nike  Running Shoes!" -> "nike running shoes"
        "T-Shirt (Blue)" -> "t-shirt blue"
    """
    if not title:
        return ""

    normalized = " ".join(title.lower().split())
    return re.sub(r"[^\w\s-]", "", normalized)


def extract_keywords(normalized_title: str) -> list[str]:
    """Meaningful words of a normalized title: 3+ characters and not a stop word."""
    return [
        word for word in normalized_title.split(" ")
        if len(word) >= MIN_KEYWORD_LENGTH and word not in STOP_WORDS
    ]


def levenshtein_distance(a: str, b: str) -> int:
    """Minimum number of single-character edits turning a into b."""
    if len(a) < len(b):
        a, b = b, a
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            cost = 0 if char_a == char_b else 1
            current.append(min(
                previous[j] + 1,         # deletion
                current[j - 1] + 1,      # insertion
                previous[j - 1] + cost,  # substitution
            ))
        previous = current
    return previous[-1]


def title_similarity(a: str, b: str) -> float:
    """1 - distance / longest length; two empty strings are identical."""
    max_length = max(len(a), len(b))
    if max_length == 0:
        return 1.0
    return max(0.0, 1 - levenshtein_distance(a, b) / max_length)


class DuplicateDetector:
    """Three-level identity resolution against the master catalog."""

    def __init__(self, products: ProductRepository, variants: VariantRepository):
        self.products = products
        self.variants = variants

    def find_duplicates(self, check: DuplicateCheckInput) -> DuplicateCheckResult:
        if check.sku:
            match = self._check_by_sku(check.sku, check.exclude_id)
            if match:
                return self._found(match, DuplicateMethod.SKU, SKU_CONFIDENCE)

        if check.handle:
            match = self._check_by_handle(check.handle, check.exclude_id)
            if match:
                return self._found(match, DuplicateMethod.HANDLE, HANDLE_CONFIDENCE)

        best = self._check_by_title(check.title, check.exclude_id)
        if best:
            product, similarity = best
            if similarity >= TITLE_SIMILARITY_THRESHOLD:
                result = self._found(product, DuplicateMethod.TITLE, similarity)
                result.similarity_score = similarity
                return result

        return DuplicateCheckResult(found=False, match=None, method=None, confidence=0.0)

    def find_duplicates_batch(self, checks: list[DuplicateCheckInput]) -> list[DuplicateCheckResult]:
        """Check each input independently, in order."""
        return [self.find_duplicates(check) for check in checks]

    def find_all_duplicates(self) -> list[DuplicateGroup]:
        """Report persisted SKU and handle collisions for manual cleanup."""
        groups = []

        for sku, products in self.variants.find_sku_duplicates():
            groups.append(DuplicateGroup(
                type=DuplicateMethod.SKU,
                value=sku,
                products=[ProductSchema.model_validate(p) for p in products],
            ))

        for handle, products in self.products.find_handle_duplicates():
            groups.append(DuplicateGroup(
                type=DuplicateMethod.HANDLE,
                value=handle,
                products=[ProductSchema.model_validate(p) for p in products],
            ))

        return groups

    def _check_by_sku(self, sku: str, exclude_id: Optional[int]) -> Optional[Product]:
        variant = self.variants.find_by_sku(sku, exclude_product_id=exclude_id)
        return variant.product if variant else None

    def _check_by_handle(self, handle: str, exclude_id: Optional[int]) -> Optional[Product]:
        return self.products.find_by_handle(handle, exclude_id=exclude_id)

    def _check_by_title(self, title: str, exclude_id: Optional[int]) -> Optional[tuple[Product, float]]:
        normalized = normalize_title(title)
        keywords = extract_keywords(normalized)
        if not keywords:
            return None

        candidates = self.products.search_by_keywords(
            keywords, exclude_id=exclude_id, limit=MAX_TITLE_CANDIDATES
        )

        best_match = None
        for candidate in candidates:
            similarity = title_similarity(normalized, normalize_title(candidate.title))
            if best_match is None or similarity > best_match[1]:
                best_match = (candidate, similarity)

        if best_match:
            logger.debug(f"Best title candidate for '{title}': '{best_match[0].title}' ({best_match[1]:.3f})")
        return best_match

    @staticmethod
    def _found(product: Product, method: DuplicateMethod, confidence: float) -> DuplicateCheckResult:
        return DuplicateCheckResult(
            found=True,
            match=ProductSchema.model_validate(product),
            method=method,
            confidence=confidence,
        )
