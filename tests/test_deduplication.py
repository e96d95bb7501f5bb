"""Tests for change detection against the store."""

import pytest
from unittest.mock import MagicMock

from g2b_monitor.models import Announcement
from g2b_monitor.storage import BaseStore, StoreError
from g2b_monitor.utils.deduplication import ChangeDetector


class InMemoryStore(BaseStore):
    """Store double enforcing id uniqueness like the real table."""

    def __init__(self, rows=None):
        super().__init__({})
        self.rows = {r['id']: dict(r) for r in rows or []}
        self.lookups = []

    def find_by_id(self, item_id):
        self.lookups.append(item_id)
        return self.rows.get(item_id)

    def insert(self, record):
        if record['id'] in self.rows:
            raise StoreError("duplicate key", code='23505', status=409)
        self.rows[record['id']] = dict(record)

    def mark_sent(self, ids):
        for i in ids:
            self.rows[i]['is_sent'] = True


@pytest.fixture
def sample_items():
    """Create sample announcements for testing."""
    return [
        Announcement(id='001', title='Item 1', link='l1'),
        Announcement(id='002', title='Item 2', link='l2'),
        Announcement(id='003', title='Item 3', link='l3'),
    ]


class TestChangeDetector:

    def test_all_new_on_empty_store(self, sample_items):
        store = InMemoryStore()
        detector = ChangeDetector(store)

        new_items = detector.detect_new(sample_items)

        assert new_items == sample_items
        assert all(row['is_sent'] is False for row in store.rows.values())
        assert detector.get_stats()['inserted'] == 3

    def test_only_unseen_items_returned(self, sample_items):
        store = InMemoryStore(rows=[{'id': '001', 'is_sent': True}])
        detector = ChangeDetector(store)

        new_items = detector.detect_new(sample_items)

        assert [i.id for i in new_items] == ['002', '003']
        assert detector.get_stats()['existing'] == 1

    def test_second_pass_finds_nothing(self, sample_items):
        store = InMemoryStore()
        ChangeDetector(store).detect_new(sample_items)

        assert ChangeDetector(store).detect_new(sample_items) == []

    def test_duplicate_ids_in_batch_inserted_once(self):
        store = InMemoryStore()
        items = [
            Announcement(id='dup', title='A', link=''),
            Announcement(id='dup', title='A', link=''),
        ]

        new_items = ChangeDetector(store).detect_new(items)

        assert len(new_items) == 1
        assert len(store.rows) == 1

    def test_lookup_error_skips_item(self, sample_items):
        store = MagicMock()
        store.find_by_id.side_effect = [StoreError("timeout"), None, None]
        detector = ChangeDetector(store)

        new_items = detector.detect_new(sample_items)

        assert [i.id for i in new_items] == ['002', '003']
        assert store.insert.call_count == 2
        assert detector.get_stats()['errors'] == 1

    def test_insert_error_skips_item(self, sample_items):
        store = MagicMock()
        store.find_by_id.return_value = None
        store.insert.side_effect = [None, StoreError("rejected"), None]

        new_items = ChangeDetector(store).detect_new(sample_items)

        assert [i.id for i in new_items] == ['001', '003']

    def test_lookups_are_sequential_in_input_order(self, sample_items):
        store = InMemoryStore()
        ChangeDetector(store).detect_new(sample_items)
        assert store.lookups == ['001', '002', '003']
