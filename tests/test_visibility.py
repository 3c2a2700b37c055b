"""
Tests for the Visibility Evaluator.

Tests verify that:
    - Unconditioned sections are visible
    - A false condition hides the section and its whole subtree
    - Conditions read values of hidden sections as null defaults
    - Nesting never turns an acyclic set of conditions into a cycle
    - Condition results use the same truthiness as not / and / or
    - Results are memoized on the snapshot object
"""

import pytest
from formstate.conditions import parse_condition
from formstate.errors import CyclicDependencyError
from formstate.index import ConfigIndex
from formstate.model import FormConfig, FormField, Section
from formstate.visibility import VisibilityEvaluator


def ids(sections):
    return [s.id for s in sections]


def checkout_like():
    return FormConfig(sections=[
        Section(id="billing", object_name="billing", fields=[
            FormField(id="1", name="billingType"),
        ]),
        Section(
            id="shipping", object_name="shipping",
            condition=parse_condition("billingType == 'different'"),
            fields=[FormField(id="2", name="street"), FormField(id="3", name="express", field_type="checkbox")],
            subsections=[
                Section(id="gift", object_name="gift", fields=[FormField(id="4", name="note")]),
                Section(id="always", object_name="always",
                        condition=parse_condition("1 == 1"),
                        fields=[FormField(id="5", name="x")]),
            ],
        ),
        Section(
            id="express", object_name="expressInfo",
            condition=parse_condition("shipping.express == true"),
            fields=[FormField(id="6", name="slot")],
        ),
    ])


@pytest.fixture
def evaluator():
    return VisibilityEvaluator(ConfigIndex(checkout_like()))


def snapshot(billing_type=None, express=False):
    return {
        "billing": {"billingType": billing_type},
        "shipping": {"street": "Elm St", "express": express},
        "gift": {"note": None},
        "always": {"x": None},
        "expressInfo": {"slot": None},
    }


class TestVisibleSections:
    """Test which sections are visible."""

    def test_unset_condition_field_hides_section(self, evaluator):
        """billingType unset -> shipping hidden."""
        visible = evaluator.compute_visible_sections(snapshot())
        assert "shipping" not in ids(visible)
        assert "billing" in ids(visible)

    def test_condition_true_shows_section(self, evaluator):
        visible = evaluator.compute_visible_sections(snapshot("different"))
        assert ids(visible) == ["billing", "shipping", "gift", "always"]

    def test_hidden_parent_hides_children(self, evaluator):
        """'always' has a true condition but its parent is hidden."""
        visible = evaluator.compute_visible_sections(snapshot("same"))
        assert "gift" not in ids(visible)
        assert "always" not in ids(visible)

    def test_hidden_section_values_read_as_null(self, evaluator):
        """express reads shipping.express; shipping is hidden so it reads False."""
        visible = evaluator.compute_visible_sections(snapshot("same", express=True))
        assert "express" not in ids(visible)

        visible = evaluator.compute_visible_sections(snapshot("different", express=True))
        assert "express" in ids(visible)

    def test_result_in_config_order(self, evaluator):
        visible = evaluator.compute_visible_sections(snapshot("different", express=True))
        assert ids(visible) == ["billing", "shipping", "gift", "always", "express"]

    def test_missing_snapshot_entries_use_defaults(self, evaluator):
        visible = evaluator.compute_visible_sections({})
        assert ids(visible) == ["billing"]


class TestEvaluationOrder:
    """Conditions are evaluated dependencies-first."""

    def test_order_is_topological(self, evaluator):
        order = evaluator.order
        assert order.index("billing") < order.index("shipping")
        assert order.index("shipping") < order.index("express")

    def test_chain_declared_backwards(self):
        """c depends on b depends on a, declared in reverse."""
        config = FormConfig(sections=[
            Section(id="c", object_name="c", condition=parse_condition("b.v == 1"),
                    fields=[FormField(id="c", name="v")]),
            Section(id="b", object_name="b", condition=parse_condition("a.v == 1"),
                    fields=[FormField(id="b", name="v")]),
            Section(id="a", object_name="a", fields=[FormField(id="a", name="v")]),
        ])
        evaluator = VisibilityEvaluator(ConfigIndex(config))
        assert evaluator.order == ["a", "b", "c"]

        data = {"a": {"v": 0}, "b": {"v": 1}, "c": {"v": None}}
        # b is hidden (a.v != 1), so c sees b.v as None even though the store holds 1
        assert ids(evaluator.compute_visible_sections(data)) == ["a"]

        data = {"a": {"v": 1}, "b": {"v": 1}, "c": {"v": None}}
        assert ids(evaluator.compute_visible_sections(data)) == ["c", "b", "a"]

    def test_cycle_fails_at_construction(self):
        config = FormConfig(sections=[
            Section(id="a", object_name="a", condition=parse_condition("b.v == 1"),
                    fields=[FormField(id="a", name="v")]),
            Section(id="b", object_name="b", condition=parse_condition("a.v == 1"),
                    fields=[FormField(id="b", name="v")]),
        ])
        with pytest.raises(CyclicDependencyError):
            VisibilityEvaluator(ConfigIndex(config))


class TestMemoization:
    """Results are cached against the snapshot object."""

    def test_same_snapshot_not_reevaluated(self, evaluator):
        data = snapshot("different")
        first = evaluator.compute_visible_sections(data)
        second = evaluator.compute_visible_sections(data)
        assert ids(first) == ids(second)
        assert evaluator.evaluation_count == 1

    def test_new_snapshot_reevaluated(self, evaluator):
        evaluator.compute_visible_sections(snapshot("different"))
        evaluator.compute_visible_sections(snapshot("same"))
        assert evaluator.evaluation_count == 2

    def test_returned_list_is_a_copy(self, evaluator):
        data = snapshot("different")
        evaluator.compute_visible_sections(data).clear()
        assert len(evaluator.compute_visible_sections(data)) == 4


class TestParentLoops:
    """Conditions that loop back through a parent are not cycles."""

    def make_evaluator(self):
        # a reads c.x; b reads a.v; c is inside b
        config = FormConfig(sections=[
            Section(id="a", object_name="a", condition=parse_condition("c.x == 1"),
                    fields=[FormField(id="a", name="v")]),
            Section(id="b", object_name="b", condition=parse_condition("a.v == 1"),
                    fields=[FormField(id="b", name="w")],
                    subsections=[Section(id="c", object_name="c", fields=[FormField(id="c", name="x")])]),
        ])
        return VisibilityEvaluator(ConfigIndex(config))

    def test_accepted(self):
        evaluator = self.make_evaluator()
        assert sorted(evaluator.order) == ["a", "b", "c"]

    def test_all_visible(self):
        evaluator = self.make_evaluator()
        data = {"a": {"v": 1}, "b": {"w": None}, "c": {"x": 1}}
        assert ids(evaluator.compute_visible_sections(data)) == ["a", "b", "c"]

    def test_hidden_parent_still_hides_child(self):
        evaluator = self.make_evaluator()
        data = {"a": {"v": 0}, "b": {"w": None}, "c": {"x": 1}}
        assert ids(evaluator.compute_visible_sections(data)) == ["a"]

    def test_unset_value(self):
        evaluator = self.make_evaluator()
        data = {"a": {"v": 1}, "b": {"w": None}, "c": {"x": None}}
        assert ids(evaluator.compute_visible_sections(data)) == []


class TestTruthiness:
    """A bare reference and its negation never agree."""

    def make_evaluator(self):
        config = FormConfig(sections=[
            Section(id="s", object_name="s", fields=[FormField(id="n", name="nick")]),
            Section(id="p", object_name="p", condition=parse_condition("nick"),
                    fields=[FormField(id="p", name="x")]),
            Section(id="n", object_name="n", condition=parse_condition("not nick"),
                    fields=[FormField(id="q", name="y")]),
        ])
        return VisibilityEvaluator(ConfigIndex(config))

    @pytest.mark.parametrize("nick, expected", [
        ("   ", ["s", "n"]),
        ("", ["s", "n"]),
        (None, ["s", "n"]),
        ("jo", ["s", "p"]),
    ])
    def test_bare_reference(self, nick, expected):
        evaluator = self.make_evaluator()
        data = {"s": {"nick": nick}, "p": {"x": None}, "n": {"y": None}}
        assert ids(evaluator.compute_visible_sections(data)) == expected
