#!/usr/bin/env python3
"""
Form Engine Demo: config → analysis → user edits → validation → output

Shows the full workflow on the example checkout form:
1. Analyze the config
2. Simulate a user filling in the form
3. Watch shipping appear and disappear with billingType
4. Validate and build the submission document
5. Save a draft and a diagram
"""

import json
import logging

from formstate import FormEngine
from formstate.analyzer import analyze_config
from formstate.backends import DotMode, save_dot_file
from formstate.examples import build_checkout_config
from formstate.serialization import snapshot_to_json


def print_report(report):
    """Pretty-print a ConfigReport."""
    print(f"   Sections:          {report.total_sections} "
          f"({report.integral_sections} integral, {report.conditional_sections} conditional)")
    print(f"   Fields:            {report.total_fields} ({report.required_fields} required)")
    print(f"   Max nesting depth: {report.max_depth}")
    print(f"   Evaluation order:  {' -> '.join(report.evaluation_order)}")
    for section_id, deps in report.dependencies.items():
        print(f"   {section_id} depends on: {', '.join(deps)}")
    if report.warnings:
        for i, warning in enumerate(report.warnings, 1):
            print(f"   {i}. {warning}")
    else:
        print("   No warnings")


def print_validation(engine):
    report = engine.get_validation()
    print(f"   Form valid: {report.valid}")
    for (section_id, field_name), errors in report.errors.items():
        for error in errors:
            print(f"      {section_id}.{field_name}: {error.message}")


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    config = build_checkout_config()

    print("=" * 80)
    print(f"FORM ENGINE DEMO: {config.name}")
    print("=" * 80)

    # =========================================================================
    # STEP 1: Analyze config
    # =========================================================================
    print("\n1. ANALYZING CONFIG...")
    print_report(analyze_config(config))

    # =========================================================================
    # STEP 2: Fill in the form
    # =========================================================================
    print("\n2. FILLING IN THE FORM...")
    engine = FormEngine(config)
    engine.subscribe_field(
        "billing", "billingType",
        lambda change: print(f"   billingType: {change.old_value!r} -> {change.new_value!r}"),
    )

    engine.write_field("billing", "street", "1 Bank St")
    engine.write_field("billing", "zip", "1234")
    engine.write_field("account", "email", "jo@example.com")
    engine.write_field("account", "password", "s3cret")
    engine.write_field("account", "confirmPassword", "s3cret")
    print(f"   Visible: {[s.id for s in engine.get_visible_sections()]}")
    print_validation(engine)

    # =========================================================================
    # STEP 3: Conditional visibility
    # =========================================================================
    print("\n3. SHIPPING TO A DIFFERENT ADDRESS...")
    engine.write_field("billing", "billingType", "different")
    engine.write_field("shipping", "street", "9 Elm St")
    engine.write_field("delivery", "express", True)
    print(f"   Visible: {[s.id for s in engine.get_visible_sections()]}")

    engine.write_field("billing", "billingType", "same")
    print(f"   Visible: {[s.id for s in engine.get_visible_sections()]}")
    print(f"   shipping.street still stored: {engine.read_field('shipping', 'street')!r}")

    # =========================================================================
    # STEP 4: Validate and build
    # =========================================================================
    print("\n4. VALIDATING AND BUILDING OUTPUT...")
    engine.write_field("billing", "zip", "12345")
    print_validation(engine)
    print(json.dumps(engine.build_output(), indent=2))

    # =========================================================================
    # STEP 5: Save draft and diagram
    # =========================================================================
    print("\n5. SAVING...")
    with open("checkout_draft.json", "w") as f:
        f.write(snapshot_to_json(engine.get_snapshot()))
    print("   ✓ Saved checkout_draft.json")
    save_dot_file(config, "checkout.dot", mode=DotMode.DETAILED)
    print("   ✓ Saved checkout.dot")

    print("\n" + "=" * 80)
    print("To visualize the diagram:")
    print("  dot -Tpng checkout.dot -o checkout.png")
    print("=" * 80)


if __name__ == "__main__":
    main()
