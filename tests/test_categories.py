from __future__ import annotations

import unittest

from fakes import sample_categories

from quickledger.engine.categories import (
    CONTAINMENT_CAPS,
    CategoryMatch,
    MatchRule,
    RequiresClassification,
    resolve_category,
    similarity,
)
from quickledger.schemas.entry import CategoryEntry


def _category(id: str, name: str, *synonyms: str, **extra) -> CategoryEntry:
    return CategoryEntry(id=id, name=name, synonyms=frozenset(synonyms), **extra)


class ResolveCategoryTests(unittest.TestCase):
    def setUp(self) -> None:
        self.registry = sample_categories()

    def assertMatch(self, result, category_id: str, rule: MatchRule) -> CategoryMatch:
        self.assertIsInstance(result, CategoryMatch)
        self.assertEqual(result.category.id, category_id)
        self.assertEqual(result.rule, rule)
        return result

    def test_exact_name(self) -> None:
        self.assertMatch(resolve_category("午餐", self.registry), "101", MatchRule.EXACT_NAME)

    def test_exact_name_ignores_case_and_whitespace(self) -> None:
        registry = [_category("c1", "Coffee")]
        self.assertMatch(resolve_category("  coffee ", registry), "c1", MatchRule.EXACT_NAME)

    def test_exact_synonym(self) -> None:
        self.assertMatch(resolve_category("便當", self.registry), "101", MatchRule.EXACT_SYNONYM)

    def test_exact_name_beats_synonym_of_earlier_category(self) -> None:
        registry = [_category("a", "餐點", "早餐"), _category("b", "早餐")]
        self.assertMatch(resolve_category("早餐", registry), "b", MatchRule.EXACT_NAME)

    def test_name_contains_input(self) -> None:
        result = self.assertMatch(
            resolve_category("交通", self.registry), "201", MatchRule.NAME_CONTAINS_INPUT
        )
        self.assertAlmostEqual(result.score, 0.95 * 2 / 3)

    def test_input_contains_name(self) -> None:
        result = self.assertMatch(
            resolve_category("公司午餐", self.registry), "101", MatchRule.INPUT_CONTAINS_NAME
        )
        self.assertAlmostEqual(result.score, 0.9 * 2 / 4)

    def test_synonym_contains_input(self) -> None:
        result = self.assertMatch(
            resolve_category("手搖", self.registry), "103", MatchRule.SYNONYM_CONTAINS_INPUT
        )
        self.assertAlmostEqual(result.score, 0.85 * 2 / 3)

    def test_input_contains_synonym(self) -> None:
        result = self.assertMatch(
            resolve_category("搭捷運", self.registry), "201", MatchRule.INPUT_CONTAINS_SYNONYM
        )
        self.assertAlmostEqual(result.score, 0.8 * 2 / 3)

    def test_containment_caps_are_ordered(self) -> None:
        self.assertGreater(
            CONTAINMENT_CAPS[MatchRule.NAME_CONTAINS_INPUT], CONTAINMENT_CAPS[MatchRule.INPUT_CONTAINS_NAME]
        )
        self.assertGreater(
            CONTAINMENT_CAPS[MatchRule.SYNONYM_CONTAINS_INPUT],
            CONTAINMENT_CAPS[MatchRule.INPUT_CONTAINS_SYNONYM],
        )

    def test_synonym_containing_input_outranks_input_containing_synonym(self) -> None:
        registry = [_category("m", "飲品", "咖啡"), _category("n", "外帶", "拿鐵咖啡外帶杯")]
        result = self.assertMatch(
            resolve_category("拿鐵咖啡", registry), "n", MatchRule.SYNONYM_CONTAINS_INPUT
        )
        self.assertGreater(result.score, 0.8 * 2 / 4)

    def test_name_rule_outranks_synonym_rule(self) -> None:
        registry = [_category("x", "雜項", "咖啡"), _category("y", "咖啡店家")]
        self.assertMatch(resolve_category("咖啡店", registry), "y", MatchRule.NAME_CONTAINS_INPUT)

    def test_higher_coverage_wins(self) -> None:
        registry = [_category("a", "牛肉麵店"), _category("b", "牛肉麵")]
        self.assertMatch(resolve_category("牛肉", registry), "b", MatchRule.NAME_CONTAINS_INPUT)

    def test_ties_follow_registry_order(self) -> None:
        noodles = _category("a", "牛肉麵")
        rice = _category("b", "牛肉飯")
        self.assertEqual(resolve_category("牛肉", [noodles, rice]).category.id, "a")
        self.assertEqual(resolve_category("牛肉", [rice, noodles]).category.id, "b")

    def test_single_character_overlap_is_not_containment(self) -> None:
        registry = [_category("a", "牛肉麵")]
        self.assertIsInstance(resolve_category("肉", registry), RequiresClassification)

    def test_similarity_tier(self) -> None:
        result = self.assertMatch(
            resolve_category("便利商城", self.registry), "104", MatchRule.SIMILARITY
        )
        self.assertAlmostEqual(result.score, 0.75)

    def test_similarity_must_exceed_threshold(self) -> None:
        result = resolve_category("便利商城", self.registry, threshold=0.75)
        self.assertIsInstance(result, RequiresClassification)

    def test_unmatched_subject_requires_classification(self) -> None:
        result = resolve_category("飯糰", self.registry)

        self.assertIsInstance(result, RequiresClassification)
        self.assertEqual(result.subject, "飯糰")
        self.assertEqual(len(result.candidates), 6)
        self.assertNotIn("999", [c.id for c in result.candidates])

    def test_inactive_categories_are_ignored(self) -> None:
        self.assertIsInstance(resolve_category("停用科目", self.registry), RequiresClassification)

    def test_similarity_helper(self) -> None:
        self.assertAlmostEqual(similarity("abcd", "ABCE"), 0.75)
        self.assertAlmostEqual(similarity("午餐", "午餐"), 1.0)
