"""
End-to-end tests for FormEngine.

Covers the scenarios a renderer and submission pipeline rely on:
    - personalInfo / address output shape
    - shipping hidden until billingType == 'different'
    - hidden values retained in the store but excluded from output
    - per-field notifications
    - snapshot memoization
    - malformed configs rejected before any read or write
    - hydration and reload
"""

import json

import pytest
import yaml
from formstate import FormEngine
from formstate.errors import ConfigurationError, CyclicDependencyError, InvariantViolation
from formstate.examples import build_checkout_config, build_personal_info_config
from formstate.serialization import config_to_dict


@pytest.fixture
def checkout():
    return FormEngine(build_checkout_config())


def visible_ids(engine):
    return [s.id for s in engine.get_visible_sections()]


class TestPersonalInfo:
    """Integral address merges into personalInfo."""

    def test_build_output(self):
        engine = FormEngine(build_personal_info_config())
        engine.write_field("personalInfo", "firstName", "John")
        engine.write_field("personalInfo", "lastName", "Doe")
        engine.write_field("address", "street", "123 Main St")
        engine.write_field("address", "city", "Anytown")

        assert engine.build_output() == {
            "personalInfo": {
                "firstName": "John",
                "lastName": "Doe",
                "street": "123 Main St",
                "city": "Anytown",
            }
        }

    def test_validation(self):
        engine = FormEngine(build_personal_info_config())
        report = engine.get_validation()
        assert not report.valid
        assert report.error_kinds("personalInfo", "firstName") == ["required"]

        engine.write_field("personalInfo", "firstName", "John")
        engine.write_field("personalInfo", "lastName", "Doe")
        assert engine.get_validation().valid


class TestConditionalVisibility:
    """Shipping depends on billing.billingType."""

    def test_unset_billing_type_hides_shipping(self, checkout):
        assert visible_ids(checkout) == ["billing", "account", "preferences"]
        assert not checkout.is_visible("shipping")
        assert not checkout.is_visible("delivery")

    def test_different_shows_shipping(self, checkout):
        checkout.write_field("billing", "billingType", "different")
        assert visible_ids(checkout) == ["billing", "shipping", "delivery", "account", "preferences"]

    def test_is_visible_unknown_section(self, checkout):
        with pytest.raises(ConfigurationError):
            checkout.is_visible("nowhere")

    def test_hidden_values_retained_but_excluded(self, checkout):
        checkout.write_field("billing", "billingType", "different")
        checkout.write_field("shipping", "street", "Elm St")
        checkout.write_field("delivery", "express", True)
        assert checkout.build_output()["shipping"] == {
            "street": "Elm St", "zip": None, "express": True, "notes": None,
        }

        checkout.write_field("billing", "billingType", "same")
        output = checkout.build_output()
        assert "shipping" not in output
        assert "express" not in json.dumps(output)
        assert checkout.read_field("shipping", "street") == "Elm St"

        checkout.write_field("billing", "billingType", "different")
        assert checkout.build_output()["shipping"]["street"] == "Elm St"

    def test_required_in_hidden_section_ignored(self, checkout):
        report = checkout.get_validation()
        assert report.errors_for("shipping", "street") == []
        assert "shipping" not in report.section_validity

        checkout.write_field("billing", "billingType", "different")
        report = checkout.get_validation()
        assert report.error_kinds("shipping", "street") == ["required"]
        assert report.section_validity["shipping"] is False


class TestValidationScenarios:
    """The checkout form end to end."""

    def fill(self, engine):
        engine.write_field("billing", "street", "1 Bank St")
        engine.write_field("billing", "zip", "12345")
        engine.write_field("account", "email", "jo@example.com")
        engine.write_field("account", "password", "s3cret")
        engine.write_field("account", "confirmPassword", "s3cret")

    def test_filled_form_is_valid(self, checkout):
        self.fill(checkout)
        assert checkout.get_validation().valid

    def test_custom_pattern_message(self, checkout):
        self.fill(checkout)
        checkout.write_field("billing", "zip", "12")
        report = checkout.get_validation()
        assert not report.valid
        assert [e.message for e in report.errors_for("billing", "zip")] == ["ZIP must be 5 digits"]

    def test_password_mismatch(self, checkout):
        self.fill(checkout)
        checkout.write_field("account", "confirmPassword", "other")
        report = checkout.get_validation()
        assert report.error_kinds("account", "confirmPassword") == ["cross_field"]
        assert report.section_validity["account"] is False
        assert report.section_validity["billing"] is True

    def test_age_range_accepts_numeric_strings(self, checkout):
        self.fill(checkout)
        checkout.write_field("account", "age", "17")
        assert checkout.get_validation().error_kinds("account", "age") == ["range"]
        checkout.write_field("account", "age", "30")
        assert checkout.get_validation().valid


class TestReactivity:
    """Writes notify only the subscribers of that field."""

    def test_granular_notification(self, checkout):
        street_events, email_events = [], []
        checkout.subscribe_field("billing", "street", street_events.append)
        checkout.subscribe_field("account", "email", email_events.append)

        checkout.write_field("billing", "street", "1 Bank St")

        assert len(street_events) == 1
        assert street_events[0].old_value is None
        assert street_events[0].new_value == "1 Bank St"
        assert email_events == []

    def test_equal_write_is_silent(self, checkout):
        events = []
        checkout.subscribe_field("billing", "street", events.append)
        assert checkout.write_field("billing", "street", "x") is True
        assert checkout.write_field("billing", "street", "x") is False
        assert len(events) == 1

    def test_unsubscribe(self, checkout):
        events = []
        unsubscribe = checkout.subscribe_field("billing", "street", events.append)
        unsubscribe()
        checkout.write_field("billing", "street", "x")
        assert events == []

    def test_unknown_field_rejected(self, checkout):
        with pytest.raises(InvariantViolation):
            checkout.write_field("billing", "fax", "1")
        with pytest.raises(InvariantViolation):
            checkout.read_field("ghost", "street")


class TestAggregation:
    """Snapshots are recomputed only after writes."""

    def test_idempotent_reads(self, checkout):
        first = checkout.get_snapshot()
        checkout.get_visible_sections()
        checkout.get_validation()
        checkout.build_output()
        assert checkout.get_snapshot() == first
        assert checkout.aggregator.recompute_count == 1

    def test_snapshot_copy_does_not_leak_into_caches(self, checkout):
        snapshot = checkout.get_snapshot()
        snapshot["billing"]["billingType"] = "different"
        assert not checkout.is_visible("shipping")
        assert checkout.read_field("billing", "billingType") is None
        assert checkout.get_snapshot()["billing"]["billingType"] is None

    def test_write_triggers_one_recompute(self, checkout):
        checkout.get_snapshot()
        checkout.write_field("billing", "street", "x")
        checkout.get_snapshot()
        checkout.get_snapshot()
        assert checkout.aggregator.recompute_count == 2

    def test_visibility_not_reevaluated_between_writes(self, checkout):
        checkout.get_visible_sections()
        checkout.get_visible_sections()
        checkout.build_output()
        assert checkout.visibility.evaluation_count == 1

    def test_generation(self, checkout):
        assert checkout.generation == 0
        checkout.write_field("billing", "street", "x")
        checkout.write_field("billing", "street", "x")
        assert checkout.generation == 1


class TestConfigLoading:
    """Malformed configs never produce an engine."""

    def cyclic(self):
        return {
            "sections": [
                {"id": "a", "fields": [{"name": "x"}], "condition": "b.y == 1"},
                {"id": "b", "fields": [{"name": "y"}], "condition": "a.x == 1"},
            ]
        }

    def test_cycle_rejected(self):
        with pytest.raises(CyclicDependencyError) as exc:
            FormEngine.from_dict(self.cyclic())
        assert isinstance(exc.value, ConfigurationError)
        assert "a" in exc.value.cycle and "b" in exc.value.cycle

    def test_duplicate_field_name_rejected(self):
        with pytest.raises(ConfigurationError):
            FormEngine.from_dict({"sections": [
                {"id": "s", "fields": [{"name": "x"}, {"name": "x", "id": "x2"}]},
            ]})

    def test_bad_condition_rejected(self):
        with pytest.raises(ConfigurationError):
            FormEngine.from_dict({"sections": [
                {"id": "s", "fields": [{"name": "x"}], "condition": "x =="},
            ]})

    def test_condition_loop_through_parent_accepted(self):
        engine = FormEngine.from_dict({"sections": [
            {"id": "A", "fields": [{"name": "a"}], "condition": "C.x == 1"},
            {"id": "B", "fields": [{"name": "b"}], "condition": "A.a == 1",
             "subsections": [{"id": "C", "fields": [{"name": "x"}]}]},
        ]})
        assert visible_ids(engine) == []

        engine.write_field("C", "x", 1)
        engine.write_field("A", "a", 1)
        assert visible_ids(engine) == ["A", "B", "C"]

    def test_non_numeric_range_bound_rejected(self):
        with pytest.raises(ConfigurationError, match="non-numeric"):
            FormEngine.from_dict({"sections": [
                {"id": "s", "fields": [{"name": "age", "rules": [{"kind": "range", "min": "18"}]}]},
            ]})

    def test_from_dict(self):
        engine = FormEngine.from_dict(config_to_dict(build_checkout_config()))
        engine.write_field("billing", "billingType", "different")
        assert engine.is_visible("shipping")

    def test_yaml_file_with_shared_object_name_rejected(self, tmp_path):
        path = tmp_path / "form.yaml"
        path.write_text(yaml.safe_dump({
            "name": "Contact",
            "sections": [
                {"id": "contact", "objectName": "contact",
                 "fields": [{"name": "email", "required": True}, {"name": "wantsCall", "type": "checkbox"}]},
                {"id": "phone", "objectName": "contact", "integral": True,
                 "fields": [{"name": "number"}], "condition": "wantsCall == true"},
            ],
        }))
        with pytest.raises(ConfigurationError):
            # two sections share the object name "contact"
            FormEngine.from_file(path)

    def test_from_json_file(self, tmp_path):
        path = tmp_path / "form.json"
        path.write_text(json.dumps({
            "sections": [
                {"id": "contact", "fields": [{"name": "email", "required": True},
                                             {"name": "wantsCall", "type": "checkbox"}],
                 "subsections": [
                     {"id": "phone", "integral": True, "fields": [{"name": "number"}],
                      "condition": "wantsCall == true"},
                 ]},
            ],
        }))
        engine = FormEngine.from_file(path)
        engine.write_field("contact", "email", "a@b.co")
        engine.write_field("phone", "number", "555")
        assert engine.build_output() == {"contact": {"email": "a@b.co", "wantsCall": False}}

        engine.write_field("contact", "wantsCall", True)
        assert engine.build_output() == {"contact": {"email": "a@b.co", "wantsCall": True, "number": "555"}}


class TestHydration:
    """Restoring a saved flat snapshot."""

    def test_load_snapshot(self, checkout):
        saved = {
            "billing": {"billingType": "different", "street": "1 Bank St"},
            "shipping": {"street": "Elm St"},
        }
        assert checkout.load_snapshot(saved) == 3
        assert checkout.is_visible("shipping")
        assert checkout.read_field("shipping", "street") == "Elm St"

    def test_load_snapshot_strict(self, checkout):
        with pytest.raises(InvariantViolation):
            checkout.load_snapshot({"billing": {"nope": 1}})
        assert checkout.generation == 0

    def test_save_and_restore(self, checkout):
        checkout.write_field("billing", "billingType", "different")
        checkout.write_field("account", "email", "jo@example.com")
        saved = checkout.get_snapshot()

        restored = FormEngine(build_checkout_config())
        restored.load_snapshot(saved)
        assert restored.build_output() == checkout.build_output()


class TestReload:
    """Switching to an edited config."""

    def test_reload_keeps_surviving_values(self):
        engine = FormEngine(build_personal_info_config())
        engine.write_field("personalInfo", "firstName", "John")
        engine.write_field("address", "city", "Anytown")

        edited = build_personal_info_config()
        edited.sections[0].subsections = []
        engine.reload(edited)

        assert engine.read_field("personalInfo", "firstName") == "John"
        with pytest.raises(InvariantViolation):
            engine.read_field("address", "city")
        assert engine.build_output() == {"personalInfo": {"firstName": "John", "lastName": None}}

    def test_invalid_reload_keeps_old_config(self):
        engine = FormEngine(build_personal_info_config())
        engine.write_field("address", "city", "Anytown")
        broken = build_personal_info_config()
        broken.sections[0].subsections[0].id = "personalInfo"

        with pytest.raises(ConfigurationError):
            engine.reload(broken)
        assert engine.read_field("address", "city") == "Anytown"
        assert engine.is_visible("address")
