"""
Example form configs.

    build_personal_info_config():
        personalInfo (nested) with an integral address subsection
    build_checkout_config():
        billing / shipping, where shipping only shows when
        billingType == 'different', plus an account section with
        password confirmation and a nested preferences block
"""
from formstate.conditions import parse_condition
from formstate.model import FormConfig, FormField, Section, ValidationRule


def build_personal_info_config() -> FormConfig:
    address = Section(
        id="address",
        object_name="address",
        title="Address",
        integral=True,
        fields=[
            FormField(id="f-street", name="street"),
            FormField(id="f-city", name="city"),
        ],
    )
    personal = Section(
        id="personalInfo",
        object_name="personalInfo",
        title="Personal information",
        integral=False,
        fields=[
            FormField(id="f-first", name="firstName", rules=[ValidationRule(kind="required")]),
            FormField(id="f-last", name="lastName", rules=[ValidationRule(kind="required")]),
        ],
        subsections=[address],
    )
    return FormConfig(name="Personal info", renderer="mui", sections=[personal])


def build_checkout_config() -> FormConfig:
    billing = Section(
        id="billing",
        object_name="billing",
        title="Billing",
        fields=[
            FormField(id="f-billing-type", name="billingType", field_type="radio"),
            FormField(id="f-billing-street", name="street", rules=[ValidationRule(kind="required")]),
            FormField(
                id="f-billing-zip",
                name="zip",
                rules=[ValidationRule(kind="pattern", pattern=r"\d{5}", message="ZIP must be 5 digits")],
            ),
        ],
    )

    shipping = Section(
        id="shipping",
        object_name="shipping",
        title="Shipping address",
        condition=parse_condition("billingType == 'different'"),
        fields=[
            FormField(id="f-shipping-street", name="street", rules=[ValidationRule(kind="required")]),
            FormField(id="f-shipping-zip", name="zip"),
        ],
        subsections=[
            Section(
                id="delivery",
                object_name="delivery",
                title="Delivery options",
                integral=True,
                fields=[
                    FormField(id="f-express", name="express", field_type="checkbox"),
                    FormField(id="f-notes", name="notes", field_type="textarea",
                              rules=[ValidationRule(kind="length", max=200)]),
                ],
            ),
        ],
    )

    preferences = Section(
        id="preferences",
        object_name="preferences",
        title="Preferences",
        fields=[
            FormField(id="f-newsletter", name="newsletter", field_type="checkbox"),
            FormField(id="f-topics", name="topics", field_type="multiselect"),
        ],
    )

    account = Section(
        id="account",
        object_name="account",
        title="Account",
        fields=[
            FormField(id="f-email", name="email", field_type="email",
                      rules=[ValidationRule(kind="required"),
                             ValidationRule(kind="pattern", pattern=r"[^@\s]+@[^@\s]+\.[^@\s]+")]),
            FormField(id="f-age", name="age", field_type="number",
                      rules=[ValidationRule(kind="range", min=18, max=120)]),
            FormField(id="f-password", name="password", rules=[ValidationRule(kind="required")]),
            FormField(id="f-confirm", name="confirmPassword",
                      rules=[ValidationRule(kind="cross_field", field="password")]),
        ],
        subsections=[preferences],
    )

    return FormConfig(name="Checkout", renderer="html", sections=[billing, shipping, account])
