# reorder_forecast/core/unification.py
from collections import Counter
from typing import Dict, Iterable, List, Optional, Tuple

from ..config import ForecastSettings
from ..models import MappingDatabase, MappingGroup, OrderLine, UnifiedProduct, normalize_article
from .projection import derive_next_order
from .seasonality import compute_seasonality
from .similarity import is_similar
from .statistics import compute_statistics

AUTO_ARTICLE_PREFIX = 'AUTO_'


def most_frequent_name(lines: Iterable[OrderLine]) -> str:
    """Most frequent non-blank product name; ties go to the first encountered."""
    names = Counter(line.product_name for line in lines if line.has_product_name)
    if not names:
        return ''
    return names.most_common(1)[0][0]


def distinct_names(lines: Iterable[OrderLine]) -> List[str]:
    """Distinct non-blank product names in encounter order."""
    return list(dict.fromkeys(line.product_name for line in lines if line.has_product_name))


def find_similar_product(
    name: str,
    products: List[UnifiedProduct],
    threshold: float
) -> Optional[UnifiedProduct]:
    """First product with a name variation similar to the given name.

    The first match wins, not the closest one, so the result depends on
    the order of products.
    """
    for product in products:
        if any(variation and is_similar(variation, name, threshold)
               for variation in product.name_variations):
            return product
    return None


class ProductUnifier:
    """Groups raw order lines into unified products."""

    def __init__(self, settings: Optional[ForecastSettings] = None, mapping: Optional[MappingDatabase] = None):
        """Initialize the unifier.

        Args:
            settings: Forecast settings (defaults when omitted)
            mapping: Optional saved mapping used to restore earlier groupings
        """
        self.settings = settings or ForecastSettings()
        self.mapping = mapping

    def unify(self, lines: List[OrderLine]) -> List[UnifiedProduct]:
        """Unify order lines into products and compute their statistics.

        Args:
            lines: Order lines in source order

        Returns:
            Unified products with derived fields populated
        """
        products: List[UnifiedProduct] = []
        remaining = list(lines)

        if self.mapping is not None and self.mapping.groups:
            products, remaining = self._attach_to_mapping(remaining)

        with_article = [line for line in remaining if line.has_article_code]
        without_article = [line for line in remaining if not line.has_article_code]

        self._group_by_article(with_article, products)
        self._group_by_name(without_article, products)

        return [self.analyze(product) for product in products]

    def analyze(self, product: UnifiedProduct) -> UnifiedProduct:
        """Run statistics, seasonality and next-order derivation once."""
        settings = self.settings
        product = compute_statistics(
            product,
            default_delivery_time=settings.default_delivery_time,
            min_points=settings.min_points_for_outlier_filter,
            multiplier=settings.iqr_multiplier,
        )
        product = compute_seasonality(product, settings.min_history_for_seasonality)
        product = derive_next_order(product, settings.delivery_safety_multiplier)
        return product

    def _attach_to_mapping(self, lines: List[OrderLine]) -> Tuple[List[UnifiedProduct], List[OrderLine]]:
        """Assign lines covered by a mapping group to that group's product.

        Returns:
            Tuple of (products seeded from groups with at least one line,
            lines not covered by any group)
        """
        groups = [group for group in self.mapping.groups if group.unified_article.strip()]
        article_index: Dict[str, MappingGroup] = {}
        name_index: Dict[str, MappingGroup] = {}

        for group in groups:
            for article in [group.unified_article] + group.article_variations:
                article_index.setdefault(normalize_article(article), group)
            for name in group.name_variations:
                name_index.setdefault(name, group)

        matched: Dict[str, List[OrderLine]] = {}
        remaining = []

        for line in lines:
            # Lines with a code are matched by code only, so a code never spans products
            if line.has_article_code:
                group = article_index.get(line.normalized_article)
            elif line.has_product_name:
                group = name_index.get(line.product_name)
            else:
                group = None

            if group is None:
                remaining.append(line)
            else:
                matched.setdefault(group.id, []).append(line)

        products = []
        for group in groups:
            group_lines = matched.get(group.id)
            if not group_lines:
                continue

            product = UnifiedProduct(
                unified_article=normalize_article(group.unified_article),
                primary_name=group.primary_name or most_frequent_name(group_lines),
                name_variations=list(dict.fromkeys(group.name_variations)),
                article_variations=list(dict.fromkeys(group.article_variations)),
                order_history=list(group_lines),
            )
            product.add_article_variation(product.unified_article)
            for line in group_lines:
                if line.has_product_name:
                    product.add_name_variation(line.product_name)
                if line.has_article_code:
                    product.add_article_variation(line.normalized_article)
            products.append(product)

        return products, remaining

    def _group_by_article(self, lines: List[OrderLine], products: List[UnifiedProduct]):
        """Create one product per normalized article code, in encounter order."""
        groups: Dict[str, List[OrderLine]] = {}
        for line in lines:
            groups.setdefault(line.normalized_article, []).append(line)

        existing = {product.unified_article: product for product in products}

        for key, group_lines in groups.items():
            product = existing.get(key)
            if product is not None:
                product.order_history.extend(group_lines)
                for name in distinct_names(group_lines):
                    product.add_name_variation(name)
                continue

            product = UnifiedProduct(
                unified_article=key,
                primary_name=most_frequent_name(group_lines),
                name_variations=distinct_names(group_lines),
                article_variations=[key],
                order_history=list(group_lines),
            )
            products.append(product)
            existing[key] = product

    def _group_by_name(self, lines: List[OrderLine], products: List[UnifiedProduct]):
        """Attach lines without an article code by name similarity."""
        threshold = self.settings.similarity_threshold

        for line in lines:
            if not line.has_product_name:
                continue

            product = find_similar_product(line.product_name, products, threshold)

            if product is not None:
                product.order_history.append(line)
                product.add_name_variation(line.product_name)
                continue

            products.append(UnifiedProduct(
                unified_article=f"{AUTO_ARTICLE_PREFIX}{len(products) + 1}",
                primary_name=line.product_name,
                name_variations=[line.product_name],
                order_history=[line],
            ))


def unify_products(
    lines: List[OrderLine],
    settings: Optional[ForecastSettings] = None,
    mapping: Optional[MappingDatabase] = None
) -> List[UnifiedProduct]:
    """Group order lines into unified products (see ProductUnifier)."""
    return ProductUnifier(settings, mapping).unify(lines)
