import threading
import unittest

from lunchspot.db import InMemoryDbClient
from lunchspot.errors import ConflictError, NotFoundError


class InMemoryDbClientTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        self.user = self.db.create_user("alice", "a@x.com", "hash")
        self.card = self.db.get_or_create_card("Pizza", "🍕", added_by=self.user.id)

    def test_duplicate_user_conflicts(self):
        with self.assertRaises(ConflictError):
            self.db.create_user("alice", "new@x.com", "hash")
        with self.assertRaises(ConflictError):
            self.db.create_user("bob", "a@x.com", "hash")

    def test_concurrent_add_favorite_counts_once(self):
        barrier = threading.Barrier(8)
        results = []

        def worker():
            barrier.wait()
            results.append(self.db.add_favorite(self.user.id, self.card.id))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(sum(1 for _, created in results if created), 1)
        self.assertEqual(len({favorite.id for favorite, _ in results}), 1)
        self.assertEqual(self.db.get_card(self.card.id).global_count, 1)

    def test_reads_while_writing(self):
        stop = threading.Event()
        errors = []

        def writer():
            i = 0
            while not stop.is_set():
                card = self.db.get_or_create_card(f"card-{i}", "🍙")
                self.db.add_favorite(self.user.id, card.id)
                self.db.create_user(f"user-{i}", f"u{i}@x.com", "hash")
                i += 1

        def reader():
            try:
                for _ in range(300):
                    self.db.list_favorites(self.user.id)
                    self.db.list_cards()
                    self.db.find_user_by_username_or_email("nobody", "n@x.com")
                    self.db.get_user_by_email("n@x.com")
            except RuntimeError as exc:
                errors.append(exc)

        writer_thread = threading.Thread(target=writer)
        readers = [threading.Thread(target=reader) for _ in range(4)]
        writer_thread.start()
        for thread in readers:
            thread.start()
        for thread in readers:
            thread.join()
        stop.set()
        writer_thread.join()

        self.assertEqual(errors, [])

    def test_returned_records_are_copies(self):
        card = self.db.get_card(self.card.id)
        card.global_count = 99
        self.assertEqual(self.db.get_card(self.card.id).global_count, 0)

    def test_concurrent_get_or_create_card_single_row(self):
        barrier = threading.Barrier(8)
        ids = []

        def worker():
            barrier.wait()
            ids.append(self.db.get_or_create_card("Ramen", "🍜").id)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(len(set(ids)), 1)
        self.assertEqual(len(self.db.cards), 2)

    def test_remove_favorite_never_goes_negative(self):
        self.assertFalse(self.db.remove_favorite(self.user.id, self.card.id))
        self.assertEqual(self.db.get_card(self.card.id).global_count, 0)

    def test_add_favorite_unknown_card(self):
        with self.assertRaises(NotFoundError):
            self.db.add_favorite(self.user.id, "missing")

    def test_reset(self):
        self.db.add_favorite(self.user.id, self.card.id)
        self.db.reset()
        self.assertEqual(self.db.users, {})
        self.assertEqual(self.db.cards, {})
        self.assertEqual(self.db.favorites, {})


if __name__ == "__main__":
    unittest.main()
