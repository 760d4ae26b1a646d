"""
Unit tests for the mapping service.
"""
import json
import os
import tempfile
import unittest

from reorder_forecast.exceptions import StorageError, ValidationError
from reorder_forecast.models import MappingDatabase, MappingGroup, UnifiedProduct
from reorder_forecast.services.mapping_service import MappingService, is_article_number


def make_product(article, name, names=None, articles=None):
    return UnifiedProduct(
        unified_article=article,
        primary_name=name,
        name_variations=list(names or [name]),
        article_variations=list(articles or [article]),
    )


class TestIsArticleNumber(unittest.TestCase):

    def test_article_detection(self):
        """Short values with a digit are article codes."""
        self.assertTrue(is_article_number('6204-2RS'))
        self.assertFalse(is_article_number('Gasket kit'))
        self.assertFalse(is_article_number('Hydraulic hose 2m long enough'))
        self.assertFalse(is_article_number(''))


class TestMappingPersistence(unittest.TestCase):
    """Test cases for saving and loading mappings."""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.addCleanup(self.temp_dir.cleanup)
        self.path = os.path.join(self.temp_dir.name, 'data', 'item_mapping.json')
        self.service = MappingService(self.path)

    def write(self, content):
        os.makedirs(os.path.dirname(self.path), exist_ok=True)
        with open(self.path, 'w', encoding='utf-8') as f:
            f.write(content)

    def test_item_mapping_round_trip(self):
        """Product identities survive a save and load."""
        products = [
            make_product('A-1', 'Bolt M8', ['Bolt M8', 'bolt m8'], ['A-1', 'OLD-1']),
            make_product('AUTO_2', 'Шайба', articles=[]),
        ]

        self.service.save_item_mapping(products)
        loaded = self.service.load_item_mapping()

        self.assertEqual(loaded, products)
        with open(self.path, encoding='utf-8') as f:
            self.assertIn('Шайба', f.read())

    def test_load_item_mapping_from_database(self):
        """The grouped format is accepted as well."""
        self.write(json.dumps({'Groups': [{
            'Name': 'Bolts', 'UnifiedArticle': 'A-1', 'PrimaryName': 'Bolt M8',
            'NameVariations': ['Bolt M8'], 'ArticleVariations': ['A-1'],
        }]}))

        loaded = self.service.load_item_mapping()

        self.assertEqual(loaded, [make_product('A-1', 'Bolt M8')])

    def test_missing_and_corrupt_files(self):
        """Missing or corrupt files load as empty."""
        self.assertEqual(self.service.load_item_mapping(), [])
        self.assertEqual(self.service.load_database().groups, [])

        self.write('[{"UnifiedArticle": ')

        self.assertEqual(self.service.load_item_mapping(), [])
        self.assertEqual(self.service.load_database().groups, [])

    def test_database_round_trip(self):
        """Groups keep their ids and variations."""
        database = MappingDatabase(groups=[
            MappingGroup(name='Bolts', unified_article='A-1', primary_name='Bolt M8',
                         name_variations=['Bolt M8'], article_variations=['A-1'])
        ])

        self.service.save_database(database)
        loaded = self.service.load_database()

        self.assertEqual(loaded, database)

    def test_load_database_from_flat_list(self):
        """A flat product list loads as one group per product."""
        self.service.save_item_mapping([make_product('A-1', 'Bolt M8')])

        database = self.service.load_database()

        self.assertEqual(len(database.groups), 1)
        self.assertEqual(database.groups[0].name, 'Bolt M8')
        self.assertEqual(database.groups[0].unified_article, 'A-1')

    def test_no_path_configured(self):
        with self.assertRaises(StorageError):
            MappingService().load_database()

    def test_write_failure(self):
        """Writing below a regular file raises StorageError."""
        blocker = os.path.join(self.temp_dir.name, 'blocker')
        with open(blocker, 'w', encoding='utf-8') as f:
            f.write('')

        with self.assertRaises(StorageError):
            self.service.save_database(MappingDatabase(), os.path.join(blocker, 'mapping.json'))


class TestBuildAndMerge(unittest.TestCase):
    """Test cases for building and merging mapping databases."""

    def setUp(self):
        self.service = MappingService()

    def test_build_database(self):
        """One group per product; duplicate names get the article appended."""
        products = [make_product('A-1', 'Bolt'), make_product('A-2', 'bolt'), make_product('AUTO_3', '')]

        database = self.service.build_database(products)

        self.assertEqual([group.name for group in database.groups], ['Bolt', 'bolt (A-2)', 'AUTO_3'])

    def test_merge_products(self):
        """Existing groups gain variations, new products get new groups."""
        database = MappingDatabase(groups=[
            MappingGroup(name='Bolts', unified_article='A-1', name_variations=['Bolt M8'], article_variations=['A-1'])
        ])
        group_id = database.groups[0].id
        products = [
            make_product('a-1', 'Bolt M8', ['Bolt M8', 'Bolt M8 zinc'], ['A-1', 'OLD-1']),
            make_product('B-2', 'Bolts'),
        ]

        merged = self.service.merge_products(database, products)

        self.assertEqual(len(merged.groups), 2)
        bolts = merged.groups[0]
        self.assertEqual(bolts.id, group_id)
        self.assertEqual(bolts.name, 'Bolts')
        self.assertEqual(bolts.primary_name, 'Bolt M8')
        self.assertEqual(bolts.name_variations, ['Bolt M8', 'Bolt M8 zinc'])
        self.assertEqual(bolts.article_variations, ['A-1', 'OLD-1'])
        self.assertEqual(merged.groups[1].name, 'Bolts (B-2)')


class TestGroupEditing(unittest.TestCase):
    """Test cases for editing groups and variations."""

    def setUp(self):
        self.service = MappingService()
        self.database = MappingDatabase()
        self.service.add_group(self.database, 'Gaskets', 'main-1')

    def test_add_group(self):
        group = self.database.groups[0]

        self.assertEqual(group.unified_article, 'MAIN-1')
        self.assertEqual(group.primary_name, 'Gaskets')
        self.assertEqual(group.article_variations, ['MAIN-1'])

    def test_add_group_validation(self):
        """Blank and duplicate names are rejected."""
        with self.assertRaises(ValidationError):
            self.service.add_group(self.database, '  ', 'X-1')
        with self.assertRaises(ValidationError) as context:
            self.service.add_group(self.database, 'gaskets', 'X-1')

        self.assertEqual(context.exception.code, 'DUPLICATE_GROUP')

    def test_remove_group(self):
        self.assertTrue(self.service.remove_group(self.database, 'GASKETS'))
        self.assertFalse(self.service.remove_group(self.database, 'Gaskets'))
        self.assertEqual(self.database.groups, [])

    def test_add_variation(self):
        """Values with a digit are stored as articles, others as names."""
        self.assertEqual(self.service.add_variation(self.database, 'Gaskets', 'old-7'), 'article')
        self.assertEqual(self.service.add_variation(self.database, 'Gaskets', 'Kit of gaskets'), 'name')
        self.service.add_variation(self.database, 'Gaskets', 'Kit of gaskets')

        group = self.database.groups[0]
        self.assertEqual(group.article_variations, ['MAIN-1', 'OLD-7'])
        self.assertEqual(group.name_variations, ['Kit of gaskets'])

    def test_add_variation_errors(self):
        with self.assertRaises(ValidationError):
            self.service.add_variation(self.database, 'Unknown', 'X-1')
        with self.assertRaises(ValidationError):
            self.service.add_variation(self.database, 'Gaskets', ' ')

    def test_remove_variation(self):
        self.service.add_variation(self.database, 'Gaskets', 'Kit of gaskets')

        self.assertTrue(self.service.remove_variation(self.database, 'Gaskets', 'Kit of gaskets'))
        self.assertTrue(self.service.remove_variation(self.database, 'Gaskets', 'main-1'))
        self.assertFalse(self.service.remove_variation(self.database, 'Gaskets', 'nothing'))
        self.assertEqual(self.database.groups[0].article_variations, [])


if __name__ == '__main__':
    unittest.main()
