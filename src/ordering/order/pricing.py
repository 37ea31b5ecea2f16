"""Order money arithmetic. Everything is Decimal, quantized to cents,
and leaves this module as a string.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from protean.exceptions import ValidationError

CENTS = Decimal("0.01")


def money(value) -> Decimal:
    try:
        return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError):
        raise ValidationError({"amount": [f"Invalid monetary amount: {value!r}"]}) from None


def price_lines(items):
    """Add subtotal/tax/total to each line. Line tax is always zero;
    tax is charged once on the order subtotal.
    """
    lines = []
    for item in items:
        quantity = int(item["quantity"])
        if quantity < 1:
            raise ValidationError({"quantity": [f"Quantity must be at least 1 for {item.get('sku')}"]})
        unit_price = money(item["unit_price"])
        if unit_price < 0:
            raise ValidationError({"unit_price": [f"Unit price cannot be negative for {item.get('sku')}"]})

        subtotal = unit_price * quantity
        lines.append(
            {
                "product_id": str(item["product_id"]),
                "sku": item["sku"],
                "name": item.get("name") or item["sku"],
                "quantity": quantity,
                "unit_price": str(unit_price),
                "subtotal": str(subtotal),
                "tax": "0.00",
                "total": str(subtotal),
            }
        )
    return lines


def compute_totals(lines, tax_rate, shipping, discount="0"):
    """grand_total = sum of line totals + tax + shipping - discount."""
    if not lines:
        raise ValidationError({"items": ["An order needs at least one line item"]})

    line_total = sum((money(line["total"]) for line in lines), Decimal("0.00"))
    subtotal = sum((money(line["subtotal"]) for line in lines), Decimal("0.00"))
    tax = money(subtotal * Decimal(str(tax_rate)))
    shipping = money(shipping)
    discount = money(discount)

    if discount < 0:
        raise ValidationError({"discount": ["Discount cannot be negative"]})
    if discount > line_total + tax + shipping:
        raise ValidationError({"discount": ["Discount cannot exceed the order value"]})

    return {
        "subtotal": str(subtotal),
        "tax": str(tax),
        "shipping": str(shipping),
        "discount": str(discount),
        "grand_total": str(line_total + tax + shipping - discount),
    }
