import unittest

from lexidrill.samplers.pool_selector import MIN_POOL_SIZE, select_pool
from tests.helpers import vocab


class SelectPoolTests(unittest.TestCase):
    def setUp(self) -> None:
        self.records = (
            vocab(3, prefix="new")
            + vocab(2, prefix="lrn", level=2)
            + vocab(4, prefix="mst", level=4)
            + vocab(1, prefix="top", level=5, favorite=True)
        )

    def test_all_keeps_library_order(self) -> None:
        sel = select_pool(self.records, "all")
        self.assertEqual([r.id for r in sel.records], [r.id for r in self.records])
        self.assertFalse(sel.too_small)

    def test_mastered_is_level_four_and_up(self) -> None:
        sel = select_pool(self.records, "mastered")
        self.assertEqual(sel.size, 5)
        self.assertTrue(all(r.confidence_level >= 4 for r in sel.records))

    def test_learning_excludes_unseen_and_mastered(self) -> None:
        sel = select_pool(self.records, "learning")
        self.assertEqual({r.id for r in sel.records}, {"lrn0", "lrn1"})
        self.assertTrue(sel.too_small)
        self.assertIn(f"Min {MIN_POOL_SIZE}", sel.message("Meaning Quiz"))

    def test_favorites(self) -> None:
        sel = select_pool(self.records, "favorites")
        self.assertEqual([r.id for r in sel.records], ["top0"])

    def test_threshold_is_configurable(self) -> None:
        sel = select_pool(self.records, "mastered", mastered_threshold=2)
        self.assertEqual(sel.size, 7)

    def test_minimum_boundary(self) -> None:
        self.assertFalse(select_pool(vocab(4), "all").too_small)
        self.assertTrue(select_pool(vocab(3), "all").too_small)

    def test_unknown_tag(self) -> None:
        with self.assertRaises(ValueError):
            select_pool(self.records, "recent")


if __name__ == "__main__":
    unittest.main()
