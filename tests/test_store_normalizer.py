from __future__ import annotations

import unittest
from decimal import Decimal

from stores.mappings import STORE_MAPPINGS
from stores.normalizer import (
    StoreNormalizer,
    detect_store_groups,
    get_top_stores_normalized,
    group_expenses_by_normalized_store,
    normalize_store_name,
    parse_amount,
)


class NormalizeStoreNameTest(unittest.TestCase):
    def test_exact_mapping(self) -> None:
        self.assertEqual(normalize_store_name("Starbucks Coffee"), "Starbucks")
        self.assertEqual(normalize_store_name("starbucks"), "Starbucks")
        self.assertEqual(normalize_store_name("  TESCO EXPRESS  "), "Tesco")
        self.assertEqual(normalize_store_name("mcdonalds"), "McDonald's")

    def test_pass_through_for_empty_or_non_string(self) -> None:
        self.assertEqual(normalize_store_name(""), "")
        self.assertIsNone(normalize_store_name(None))
        self.assertEqual(normalize_store_name(42), 42)

    def test_title_case_fallback(self) -> None:
        self.assertEqual(normalize_store_name("Some Random Shop Pte Ltd"), "Some Random Shop Pte Ltd")
        self.assertEqual(normalize_store_name("joe's DINER"), "Joe's Diner")
        self.assertEqual(normalize_store_name("night  market"), "Night  Market")

    def test_partial_match_requires_similarity(self) -> None:
        self.assertEqual(normalize_store_name("Shell Gas Statio"), "Shell")
        self.assertEqual(normalize_store_name("GSC Cinemas"), "GSC")
        # Contains "tesco extra" but only 11/18 similar.
        self.assertEqual(normalize_store_name("Tesco Extra Ampang"), "Tesco Extra Ampang")

    def test_first_match_wins_in_table_order(self) -> None:
        mappings = {"abc shop": "Abc", "abc shops": "Abc Shops"}
        self.assertEqual(normalize_store_name("abc shops!", mappings), "Abc")
        self.assertEqual(
            normalize_store_name("abc shops!", mappings, strategy="longest_match"),
            "Abc Shops",
        )

    def test_mapping_table_lists_specific_keys_first(self) -> None:
        keys = list(STORE_MAPPINGS)
        self.assertLess(keys.index("starbucks coffee"), keys.index("starbucks"))
        self.assertLess(keys.index("tesco express"), keys.index("tesco"))
        self.assertLess(keys.index("shell gas station"), keys.index("shell"))


class GroupingTest(unittest.TestCase):
    def test_top_stores_merges_variants(self) -> None:
        transactions = [
            {"store": "Tesco Express", "total": 10},
            {"store": "tesco", "total": 5},
        ]
        top = get_top_stores_normalized(transactions, 5)
        self.assertEqual(len(top), 1)
        self.assertEqual(top[0]["store"], "Tesco")
        self.assertEqual(top[0]["total"], 15)
        self.assertEqual(top[0]["count"], 2)
        self.assertCountEqual(top[0]["originalNames"], ["Tesco Express", "tesco"])

    def test_group_accumulates_and_tracks_members(self) -> None:
        transactions = [
            {"store_name": "Starbucks Coffee", "total_amount": "12.50"},
            {"store_name": "starbucks", "total_amount": 7.5},
            {"store_name": "Starbucks Coffee", "total_amount": "3"},
            {"store_name": "Kedai Runcit Ali", "total_amount": "8.20"},
        ]
        groups = group_expenses_by_normalized_store(transactions)
        self.assertEqual(set(groups), {"Starbucks", "Kedai Runcit Ali"})
        starbucks = groups["Starbucks"]
        self.assertEqual(starbucks.canonical_name, "Starbucks")
        self.assertEqual(starbucks.member_names, {"Starbucks Coffee", "starbucks"})
        self.assertEqual(starbucks.visit_count, 3)
        self.assertEqual(starbucks.total_amount, Decimal("23.0"))
        self.assertEqual(len(starbucks.transactions), 3)

    def test_non_numeric_amounts_count_as_zero(self) -> None:
        transactions = [
            {"store_name": "KFC", "total_amount": "abc"},
            {"store_name": "KFC", "total_amount": None},
            {"store_name": "KFC", "total_amount": float("nan")},
            {"store_name": "KFC", "total_amount": "4.40 RM"},
            {"store_name": "KFC"},
        ]
        top = get_top_stores_normalized(transactions)
        self.assertEqual(top, [{"store": "KFC", "total": 4.4, "count": 5, "originalNames": ["KFC"]}])

    def test_empty_input(self) -> None:
        self.assertEqual(group_expenses_by_normalized_store([]), {})
        self.assertEqual(group_expenses_by_normalized_store(None), {})
        self.assertEqual(get_top_stores_normalized([], 5), [])

    def test_sorted_descending_and_truncated(self) -> None:
        transactions = [
            {"store_name": "Petron", "total_amount": 50},
            {"store_name": "KFC", "total_amount": 12.345},
            {"store_name": "gsc", "total_amount": 30},
            {"store_name": "Burger King", "total_amount": 0.1},
            {"store_name": "burger king", "total_amount": 0.2},
        ]
        top = get_top_stores_normalized(transactions, 3)
        self.assertEqual([row["store"] for row in top], ["Petron", "GSC", "KFC"])
        self.assertEqual(top[2]["total"], 12.35)
        full = get_top_stores_normalized(transactions, 10)
        self.assertEqual(full[-1], {"store": "Burger King", "total": 0.3, "count": 2, "originalNames": ["Burger King", "burger king"]})

    def test_explicit_field_names(self) -> None:
        transactions = [{"merchant": "shell", "paid": "20"}, {"merchant": "Shell Gas Station", "paid": "5"}]
        top = get_top_stores_normalized(transactions, 5, store_field="merchant", amount_field="paid")
        self.assertEqual(top[0]["store"], "Shell")
        self.assertEqual(top[0]["total"], 25)


class DetectStoreGroupsTest(unittest.TestCase):
    def test_groups_similar_names_and_drops_singletons(self) -> None:
        groups = detect_store_groups(["Starbucks", "Starbuck", "starbucks ", "KFC"])
        self.assertEqual(groups, [["Starbucks", "Starbuck", "starbucks "]])

    def test_threshold_controls_membership(self) -> None:
        names = ["Shell Gas", "shell gas station", "KFC"]
        self.assertEqual(detect_store_groups(names, 0.8), [])
        self.assertEqual(detect_store_groups(names, 0.5), [["Shell Gas", "shell gas station"]])

    def test_seed_based_grouping_depends_on_order(self) -> None:
        # abcd~abce and abce~abfe, but abcd and abfe are two edits apart.
        self.assertEqual(detect_store_groups(["abcd", "abce", "abfe"], 0.75), [["abcd", "abce"]])
        self.assertEqual(detect_store_groups(["abce", "abcd", "abfe"], 0.75), [["abce", "abcd", "abfe"]])

    def test_empty_and_malformed_input(self) -> None:
        self.assertEqual(detect_store_groups([]), [])
        self.assertEqual(detect_store_groups(None), [])
        self.assertEqual(detect_store_groups(["KFC", None, 3, "kfc"]), [["KFC", "kfc"]])


class ParseAmountTest(unittest.TestCase):
    def test_parse_amount(self) -> None:
        self.assertEqual(parse_amount("12.50"), Decimal("12.50"))
        self.assertEqual(parse_amount(" 7 "), Decimal("7"))
        self.assertEqual(parse_amount("-3.5"), Decimal("-3.5"))
        self.assertEqual(parse_amount(True), Decimal("0"))
        self.assertEqual(parse_amount("RM 12"), Decimal("0"))
        self.assertEqual(parse_amount(Decimal("Infinity")), Decimal("0"))


class StoreNormalizerTest(unittest.TestCase):
    def test_extra_mappings_take_precedence(self) -> None:
        normalizer = StoreNormalizer(extra_mappings={"Starbucks Coffee": "Starbucks Reserve", "Mydin Mall": "Mydin"})
        self.assertEqual(normalizer.normalize("starbucks coffee"), "Starbucks Reserve")
        self.assertEqual(normalizer.normalize("MYDIN MALL"), "Mydin")
        self.assertEqual(normalizer.normalize("starbucks"), "Starbucks")

    def test_from_config(self) -> None:
        config = {
            "store_normalizer": {
                "strategy": "LONGEST_MATCH",
                "group_threshold": 0.5,
                "extra_mappings": {"abc shop": "Abc", "abc shops": "Abc Shops"},
            }
        }
        normalizer = StoreNormalizer.from_config(config)
        self.assertEqual(normalizer.strategy, "longest_match")
        self.assertEqual(normalizer.normalize("abc shops!"), "Abc Shops")
        self.assertEqual(normalizer.detect_groups(["Shell Gas", "shell gas station"]), [["Shell Gas", "shell gas station"]])

    def test_unknown_strategy_falls_back_to_first_match(self) -> None:
        normalizer = StoreNormalizer(strategy="random")
        self.assertEqual(normalizer.strategy, "first_match")


if __name__ == "__main__":
    unittest.main()
