"""
Product templates for FinPlanLab.

An ``insurance_product`` event is a template holder: it carries a template
id and parameters, and expands into ordinary premium, payout and tax-benefit
events. The default templates are registered when this module is imported.
"""

from .insurance import (
    HK_ANNUITY_TAX_DEDUCT,
    HK_ANNUITY_TEMPLATE,
    SAVINGS_PAY_2_RETURN_5,
    SAVINGS_TEMPLATE,
)
from .registry import (
    DerivedEvent,
    DerivedSpec,
    ProductTemplate,
    TemplateParam,
    TemplateRegistry,
    TemplateSeed,
    expand_product,
    get_template,
    register_template,
)


def register_defaults():
    """
    Register the built-in insurance templates.

    Registered Templates:
        - 'savings_pay_2_return_5': two years of premiums, lump sum after five
        - 'hk_annuity_tax_deduct_pay_5_withdraw_8': deductible annuity premium
          with a monthly tax benefit and a withdrawal after eight years

    Note:
        Called automatically on import. Calling it again is a no-op.
    """
    for template in (SAVINGS_TEMPLATE, HK_ANNUITY_TEMPLATE):
        if template.id not in TemplateRegistry:
            register_template(template)


register_defaults()

__all__ = [
    "DerivedEvent",
    "DerivedSpec",
    "HK_ANNUITY_TAX_DEDUCT",
    "ProductTemplate",
    "SAVINGS_PAY_2_RETURN_5",
    "TemplateParam",
    "TemplateRegistry",
    "TemplateSeed",
    "expand_product",
    "get_template",
    "register_defaults",
    "register_template",
]
