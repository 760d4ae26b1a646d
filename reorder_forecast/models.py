# reorder_forecast/models.py
import enum
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

MONTHS_IN_YEAR = 12


def _format_date(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _parse_date(value) -> Optional[datetime]:
    if value in (None, ''):
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def normalize_article(article_code: Optional[str]) -> str:
    """Normalize an article code for exact matching (trimmed, upper case)."""
    return (article_code or '').strip().upper()


class PriorityLevel(enum.IntEnum):
    """Order urgency tiers.

    Values:
        OVERDUE (1): Placement date has already passed
        URGENT (2): Order must be placed within a week
        SOON (3): Order must be placed within two weeks
        PLANNED (4): Order must be placed within three weeks
        LATER (5): Three weeks or more until placement
    """
    OVERDUE = 1
    URGENT = 2
    SOON = 3
    PLANNED = 4
    LATER = 5

    @property
    def label(self) -> str:
        return self.name.capitalize()

    @classmethod
    def from_value(cls, value: int) -> 'PriorityLevel':
        """Create a PriorityLevel from an integer value.

        Raises:
            ValueError if the value is not between 1 and 5
        """
        try:
            return cls(int(value))
        except ValueError:
            raise ValueError(f"Invalid priority: {value}. Valid values are: 1, 2, 3, 4, 5")


@dataclass(frozen=True)
class OrderLine:
    """One historical purchase order line as read from the source spreadsheet."""

    order_date: datetime
    order_number: str = ''
    position_number: str = ''
    product_name: str = ''
    article_code: Optional[str] = None
    ordered_quantity: float = 0.0
    delivered_quantity: float = 0.0
    delivery_date: Optional[datetime] = None
    notes: str = ''

    @property
    def has_article_code(self) -> bool:
        return bool(normalize_article(self.article_code))

    @property
    def has_product_name(self) -> bool:
        return bool(self.product_name and self.product_name.strip())

    @property
    def normalized_article(self) -> str:
        return normalize_article(self.article_code)

    @property
    def delivery_days(self) -> Optional[float]:
        """Days between ordering and delivery, or None when not delivered."""
        if self.delivery_date is None:
            return None
        return (self.delivery_date - self.order_date).total_seconds() / 86400.0


@dataclass
class UnifiedProduct:
    """Canonical product grouping all order lines that refer to the same item.

    Derived fields are filled in by the analysis phases and overwritten each
    time a phase runs.
    """

    unified_article: str
    primary_name: str = ''
    name_variations: List[str] = field(default_factory=list)
    article_variations: List[str] = field(default_factory=list)
    order_history: List[OrderLine] = field(default_factory=list)

    average_order_interval: float = 0.0
    average_order_quantity: float = 0.0
    average_delivery_time: float = 0.0
    seasonality_coefficients: List[float] = field(
        default_factory=lambda: [1.0] * MONTHS_IN_YEAR
    )
    last_order_date: Optional[datetime] = None
    next_predicted_order_date: Optional[datetime] = None
    recommended_quantity: float = 0.0
    optimal_order_placement_date: Optional[datetime] = None

    @property
    def history_count(self) -> int:
        return len(self.order_history)

    def sorted_history(self) -> List[OrderLine]:
        """Order history sorted by order date ascending."""
        return sorted(self.order_history, key=lambda line: line.order_date)

    def add_name_variation(self, name: str):
        if name and name not in self.name_variations:
            self.name_variations.append(name)

    def add_article_variation(self, article: str):
        if article and article not in self.article_variations:
            self.article_variations.append(article)

    def seasonal_coefficient(self, month: int) -> float:
        """Coefficient for a calendar month (1-12); 0 is treated as neutral."""
        coefficient = self.seasonality_coefficients[month - 1]
        return coefficient if coefficient != 0 else 1.0

    def to_mapping_dict(self) -> Dict:
        return {
            'UnifiedArticle': self.unified_article,
            'PrimaryName': self.primary_name,
            'NameVariations': list(self.name_variations),
            'ArticleVariations': list(self.article_variations),
        }

    @classmethod
    def from_mapping_dict(cls, data: Dict) -> 'UnifiedProduct':
        return cls(
            unified_article=data.get('UnifiedArticle') or '',
            primary_name=data.get('PrimaryName') or '',
            name_variations=list(data.get('NameVariations') or []),
            article_variations=list(data.get('ArticleVariations') or []),
        )


@dataclass(frozen=True)
class ForecastResult:
    """A single projected order event for one product."""

    unified_article: str
    product_name: str
    next_order_date: datetime
    recommended_quantity: float
    optimal_order_placement_date: datetime
    priority: int
    confidence: float
    notes: str = ''

    @property
    def priority_level(self) -> PriorityLevel:
        return PriorityLevel.from_value(self.priority)

    def to_dict(self) -> Dict:
        return {
            'UnifiedArticle': self.unified_article,
            'ProductName': self.product_name,
            'NextOrderDate': _format_date(self.next_order_date),
            'RecommendedQuantity': self.recommended_quantity,
            'OptimalOrderPlacementDate': _format_date(self.optimal_order_placement_date),
            'Priority': self.priority,
            'Confidence': self.confidence,
            'Notes': self.notes,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'ForecastResult':
        return cls(
            unified_article=data.get('UnifiedArticle') or '',
            product_name=data.get('ProductName') or '',
            next_order_date=_parse_date(data['NextOrderDate']),
            recommended_quantity=float(data.get('RecommendedQuantity') or 0.0),
            optimal_order_placement_date=_parse_date(data['OptimalOrderPlacementDate']),
            priority=int(data.get('Priority') or PriorityLevel.LATER),
            confidence=float(data.get('Confidence') or 0.0),
            notes=data.get('Notes') or '',
        )


@dataclass
class MappingGroup:
    """Persisted correspondence between name/article variations and a unified article."""

    name: str = ''
    unified_article: str = ''
    primary_name: str = ''
    name_variations: List[str] = field(default_factory=list)
    article_variations: List[str] = field(default_factory=list)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self) -> Dict:
        return {
            'Id': self.id,
            'Name': self.name,
            'UnifiedArticle': self.unified_article,
            'PrimaryName': self.primary_name,
            'NameVariations': list(self.name_variations),
            'ArticleVariations': list(self.article_variations),
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'MappingGroup':
        group = cls(
            name=data.get('Name') or data.get('PrimaryName') or '',
            unified_article=data.get('UnifiedArticle') or '',
            primary_name=data.get('PrimaryName') or '',
            name_variations=list(data.get('NameVariations') or []),
            article_variations=list(data.get('ArticleVariations') or []),
        )
        if data.get('Id'):
            group.id = data['Id']
        return group


@dataclass
class MappingDatabase:
    """Collection of mapping groups stored between sessions."""

    groups: List[MappingGroup] = field(default_factory=list)

    def find_group(self, name: str) -> Optional[MappingGroup]:
        """Find a group by name (case-insensitive)."""
        for group in self.groups:
            if group.name.lower() == name.lower():
                return group
        return None

    def to_dict(self) -> Dict:
        return {'Groups': [group.to_dict() for group in self.groups]}

    @classmethod
    def from_dict(cls, data: Dict) -> 'MappingDatabase':
        return cls(groups=[MappingGroup.from_dict(item) for item in data.get('Groups') or []])
