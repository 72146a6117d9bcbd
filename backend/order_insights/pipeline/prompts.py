"""
Prompt Engineering Module
==========================

System message and user prompt for per-order insight generation.

Related files:
- order_insights/pipeline/ai_service.py: Sends these prompts
- order_insights/pipeline/order_processor.py: Produces the prompt inputs

Design principles:
- Keep prompts in code (not external files) for versioning
- Output is deterministic for a given order and customer
- Ask for a bare JSON object; the call also sets JSON mode
- Customer names stay out of the prompt unless the merchant opts in
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from order_insights.models import CustomerTypeEnum
from order_insights.pipeline.order_processor import ProcessedCustomer, ProcessedOrder

SYSTEM_MESSAGE = """You are an AI assistant specialized in e-commerce analytics and customer relationship management. You help Shopify merchants understand their customers better and craft personalized follow-up communications.

Your responses should be:
- Actionable and specific to the order data provided
- Professional yet friendly in tone
- Focused on improving customer retention and lifetime value
- Realistic about what merchants can do (no complex automation suggestions)

Always respond with valid JSON only, no markdown formatting or code blocks."""

PREAMBLE = """You are an expert e-commerce analyst helping a Shopify merchant understand their orders and customers.

Analyze the following order and generate:
1. A 2-3 sentence insight for the merchant (what this order reveals about customer behavior, potential actions)
2. A suggested follow-up email with subject line and body (keep it friendly, personalized, and actionable)"""

INSTRUCTIONS = """INSTRUCTIONS:
- Keep insights actionable (suggest tags, segments, or next steps)
- Email should be 3-5 sentences, conversational tone
- Use {{customer_first_name}}, {{product_name}}, {{order_name}} as placeholders
- Don't make up specific discount codes or links - use {{discount_code}} or {{link}} as placeholders

Return ONLY valid JSON (no markdown, no code blocks):
{
  "insight": "string",
  "followupSubject": "string",
  "followupBody": "string"
}"""

DEFAULT_CUSTOMER_LABEL = "the customer"


@dataclass(frozen=True)
class PromptSettings:
    include_customer_name: bool = False


def _money(value: Decimal) -> str:
    return f"{Decimal(value):.2f}"


def _focus_area(customer: ProcessedCustomer) -> str:
    """Customer-type specific instructions."""
    if customer.customer_type == CustomerTypeEnum.first_time:
        return (
            "FOCUS AREA (First-Time Customer):\n"
            "- Welcome messaging and brand introduction\n"
            "- Building initial trust and loyalty\n"
            "- Encouraging a second purchase with small incentive"
        )
    if customer.customer_type == CustomerTypeEnum.vip:
        return (
            f"FOCUS AREA (VIP Customer - {customer.orders_count} orders, "
            f"${_money(customer.total_spent)} LTV):\n"
            "- Appreciation and recognition for loyalty\n"
            "- Exclusive benefits or early access offers\n"
            "- Personalized recommendations based on history"
        )
    return (
        f"FOCUS AREA (Repeat Customer - {customer.orders_count} orders):\n"
        "- Thank them for continued support\n"
        "- Consider subscription or bundle offers\n"
        "- Look for patterns (replenishment, category preferences)"
    )


def build_prompt(
    order: ProcessedOrder,
    customer: ProcessedCustomer,
    settings: PromptSettings = PromptSettings(),
) -> str:
    """Build the user prompt for one order.

    Args:
        order: Normalized order
        customer: Classified customer
        settings: Prompt privacy settings

    Returns:
        Prompt text ending with the required JSON shape
    """
    customer_label = DEFAULT_CUSTOMER_LABEL
    if settings.include_customer_name and customer.first_name:
        customer_label = customer.first_name

    items = ", ".join(f"{item.title} (x{item.quantity})" for item in order.line_items)
    discount = f"Yes ({', '.join(order.discount_codes)})" if order.has_discount else "No"

    lines = [
        PREAMBLE,
        "",
        "ORDER DETAILS:",
        f"- Order Total: {order.currency} {_money(order.total_price)}",
        f"- Items: {items}",
        f"- Quantity: {order.item_count} items",
        f"- Discount Used: {discount}",
        "",
        "CUSTOMER CONTEXT:",
        f"- Customer: {customer_label}",
        f"- Total Orders: {customer.orders_count}",
        f"- Lifetime Spend: ${_money(customer.total_spent)}",
        f"- Customer Type: {customer.customer_type.value}",
    ]
    if customer.days_since_first_order is not None:
        lines.append(f"- Days Since First Order: {customer.days_since_first_order}")

    return "\n".join(lines) + "\n\n" + _focus_area(customer) + "\n\n" + INSTRUCTIONS
