# reorder_forecast/services/mapping_service.py
import json
from pathlib import Path
from typing import Any, List, Optional, Union

from reorder_forecast.exceptions import StorageError, ValidationError
from reorder_forecast.logging_setup import get_logger
from reorder_forecast.models import MappingDatabase, MappingGroup, UnifiedProduct, normalize_article

logger = get_logger(__name__)

MAX_ARTICLE_LENGTH = 20


def is_article_number(value: str) -> bool:
    """Whether a variation looks like an article code rather than a name.

    Article codes contain at least one digit and are shorter than 20
    characters.
    """
    value = (value or '').strip()
    return any(ch.isdigit() for ch in value) and len(value) < MAX_ARTICLE_LENGTH


class MappingService:
    """Persists and edits the mapping between raw variations and unified articles."""

    def __init__(self, path: Optional[Union[str, Path]] = None):
        """Initialize the mapping service.

        Args:
            path: Default mapping file, used when a method is called without one
        """
        self.path = Path(path) if path else None

    def _resolve(self, path: Optional[Union[str, Path]]) -> Path:
        if path is not None:
            return Path(path)
        if self.path is None:
            raise StorageError("No mapping file configured", code='NO_PATH')
        return self.path

    def _read_json(self, path: Path) -> Any:
        """Raw JSON content of the mapping file, or None when missing or corrupt."""
        if not path.exists():
            logger.debug(f"No mapping file at {path}")
            return None

        try:
            with open(path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"Error loading mapping from {path}: {str(e)}")
            return None

    def _write_json(self, data: Any, path: Path):
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, 'w', encoding='utf-8') as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
        except OSError as e:
            logger.error(f"Error saving mapping to {path}: {str(e)}")
            raise StorageError(f"Failed to save mapping: {str(e)}", code='WRITE_FAILED') from e

    def save_item_mapping(self, products: List[UnifiedProduct], path: Optional[Union[str, Path]] = None):
        """Save product identities as a flat list (order history is not stored).

        Raises:
            StorageError: If the file cannot be written
        """
        path = self._resolve(path)
        self._write_json([product.to_mapping_dict() for product in products], path)
        logger.info(f"Saved mapping for {len(products)} products to {path}")

    def load_item_mapping(self, path: Optional[Union[str, Path]] = None) -> List[UnifiedProduct]:
        """Load product identities saved by save_item_mapping.

        Both the flat list and the grouped database format are accepted.

        Returns:
            Products without order history; an empty list when the file is
            missing or corrupt
        """
        path = self._resolve(path)
        data = self._read_json(path)

        if isinstance(data, list):
            try:
                return [UnifiedProduct.from_mapping_dict(item) for item in data]
            except (AttributeError, TypeError) as e:
                logger.error(f"Malformed mapping entries in {path}: {str(e)}")
                return []

        if isinstance(data, dict):
            return [
                UnifiedProduct(
                    unified_article=group.unified_article,
                    primary_name=group.primary_name,
                    name_variations=list(group.name_variations),
                    article_variations=list(group.article_variations),
                )
                for group in self._parse_database(data, path).groups
            ]

        return []

    def _parse_database(self, data: Any, path: Path) -> MappingDatabase:
        try:
            if isinstance(data, list):
                return MappingDatabase(groups=[MappingGroup.from_dict(item) for item in data])
            if isinstance(data, dict):
                return MappingDatabase.from_dict(data)
        except (AttributeError, TypeError) as e:
            logger.error(f"Malformed mapping database in {path}: {str(e)}")
        return MappingDatabase()

    def load_database(self, path: Optional[Union[str, Path]] = None) -> MappingDatabase:
        """Load the mapping database.

        Returns:
            Loaded database; an empty one when the file is missing or corrupt
        """
        path = self._resolve(path)
        data = self._read_json(path)
        if data is None:
            return MappingDatabase()

        database = self._parse_database(data, path)
        logger.debug(f"Loaded {len(database.groups)} mapping groups from {path}")
        return database

    def save_database(self, database: MappingDatabase, path: Optional[Union[str, Path]] = None):
        """Save the mapping database as {"Groups": [...]}.

        Raises:
            StorageError: If the file cannot be written
        """
        path = self._resolve(path)
        self._write_json(database.to_dict(), path)
        logger.info(f"Saved {len(database.groups)} mapping groups to {path}")

    def build_database(self, products: List[UnifiedProduct]) -> MappingDatabase:
        """Create a mapping database with one group per product."""
        groups = []
        used_names = set()

        for product in products:
            name = product.primary_name or product.unified_article
            if name.lower() in used_names:
                name = f"{name} ({product.unified_article})"
            used_names.add(name.lower())

            groups.append(MappingGroup(
                name=name,
                unified_article=product.unified_article,
                primary_name=product.primary_name,
                name_variations=list(product.name_variations),
                article_variations=list(product.article_variations),
            ))

        return MappingDatabase(groups=groups)

    def merge_products(self, database: MappingDatabase, products: List[UnifiedProduct]) -> MappingDatabase:
        """Fold unified products into an existing database.

        Groups keep their id and name; variations found in the products are
        appended. Products without a group get a new one.

        Returns:
            The updated database
        """
        by_article = {normalize_article(group.unified_article): group for group in database.groups}
        new_products = []

        for product in products:
            group = by_article.get(normalize_article(product.unified_article))
            if group is None:
                new_products.append(product)
                continue

            for name in product.name_variations:
                if name not in group.name_variations:
                    group.name_variations.append(name)
            for article in product.article_variations:
                if article not in group.article_variations:
                    group.article_variations.append(article)
            if not group.primary_name:
                group.primary_name = product.primary_name

        used_names = {group.name.lower() for group in database.groups}
        for group in self.build_database(new_products).groups:
            if group.name.lower() in used_names:
                group.name = f"{group.name} ({group.unified_article})"
            used_names.add(group.name.lower())
            database.groups.append(group)

        return database

    def add_group(
        self,
        database: MappingDatabase,
        name: str,
        unified_article: str,
        primary_name: str = ''
    ) -> MappingGroup:
        """Add a new group to the database.

        Raises:
            ValidationError: If the name is blank or already used (case-insensitive)
        """
        name = (name or '').strip()
        if not name:
            raise ValidationError("Group name must not be empty", code='EMPTY_GROUP_NAME')
        if database.find_group(name) is not None:
            raise ValidationError(f"A group named '{name}' already exists", code='DUPLICATE_GROUP')

        group = MappingGroup(
            name=name,
            unified_article=normalize_article(unified_article),
            primary_name=primary_name or name,
        )
        if group.unified_article:
            group.article_variations.append(group.unified_article)

        database.groups.append(group)
        return group

    def remove_group(self, database: MappingDatabase, name: str) -> bool:
        """Remove a group by name; returns whether it existed."""
        group = database.find_group(name)
        if group is None:
            return False
        database.groups.remove(group)
        return True

    def _get_group(self, database: MappingDatabase, group_name: str) -> MappingGroup:
        group = database.find_group(group_name)
        if group is None:
            raise ValidationError(f"Mapping group not found: {group_name}", code='GROUP_NOT_FOUND')
        return group

    def add_variation(self, database: MappingDatabase, group_name: str, value: str) -> str:
        """Add a name or article variation to a group.

        Args:
            database: Mapping database
            group_name: Name of the group
            value: Variation; treated as an article code when is_article_number

        Returns:
            'article' or 'name', depending on where the variation was stored

        Raises:
            ValidationError: If the group does not exist or the value is blank
        """
        group = self._get_group(database, group_name)
        value = (value or '').strip()
        if not value:
            raise ValidationError("Variation must not be empty", code='EMPTY_VARIATION')

        if is_article_number(value):
            article = normalize_article(value)
            if article not in group.article_variations:
                group.article_variations.append(article)
            return 'article'

        if value not in group.name_variations:
            group.name_variations.append(value)
        return 'name'

    def remove_variation(self, database: MappingDatabase, group_name: str, value: str) -> bool:
        """Remove a variation from a group; returns whether it was present."""
        group = self._get_group(database, group_name)
        value = (value or '').strip()

        if value in group.name_variations:
            group.name_variations.remove(value)
            return True

        article = normalize_article(value)
        if article in group.article_variations:
            group.article_variations.remove(article)
            return True

        return False
