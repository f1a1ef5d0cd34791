"""Requested stock lines: (product_id, quantity) pairs carried by commands as JSON."""

import json

from protean.exceptions import ValidationError


def parse_lines(raw) -> list[dict]:
    """Normalize JSON or a list of dicts into merged ``{product_id, quantity}`` lines.

    Duplicate products are summed so availability checks see the full request,
    and zero-quantity lines are dropped. Raises ValidationError for an empty
    list, a missing product id, a quantity that is not a nonnegative integer,
    or a request in which nothing is left after dropping zeros.
    """
    items = json.loads(raw) if isinstance(raw, str) else raw
    if not items or not isinstance(items, list):
        raise ValidationError({"items": ["At least one item is required"]})

    merged: dict[str, int] = {}
    for item in items:
        product_id = item.get("product_id") if isinstance(item, dict) else None
        if not product_id:
            raise ValidationError({"items": ["Each item needs a product_id"]})
        quantity = item.get("quantity")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 0:
            raise ValidationError({"items": [f"Quantity for product {product_id} must be a nonnegative integer"]})
        if quantity:
            merged[str(product_id)] = merged.get(str(product_id), 0) + quantity

    if not merged:
        raise ValidationError({"items": ["At least one item with a positive quantity is required"]})

    return [{"product_id": pid, "quantity": qty} for pid, qty in merged.items()]


def dump_lines(lines) -> str:
    return json.dumps([{"product_id": str(line["product_id"]), "quantity": line["quantity"]} for line in lines])
