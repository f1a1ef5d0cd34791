"""Human-facing order numbers: ``<PREFIX>-<epoch millis>-<random>``.

Exports and invoices address orders by this number, so a candidate is
checked against stored orders and regenerated on collision.
"""

import secrets
import string
import time

from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from storefront.ordering.order import Order

MAX_ATTEMPTS = 5

_ALPHABET = string.ascii_uppercase + string.digits


def _now_millis():
    return int(time.time() * 1000)


def _random_part(length):
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))


def generate_order_number(prefix, random_length=9):
    repo = current_domain.repository_for(Order)
    for _ in range(MAX_ATTEMPTS):
        candidate = f"{prefix}-{_now_millis()}-{_random_part(random_length)}"
        if not repo._dao.query.filter(order_number=candidate).all().items:
            return candidate
    raise ValidationError({"order_number": [f"Could not generate a unique order number after {MAX_ATTEMPTS} attempts"]})
