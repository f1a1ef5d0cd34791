"""Warehouse selection and read-side stock queries.

Selection is all-or-nothing: the chosen warehouse must cover every line on
its own. An order is never split across warehouses.
"""

from protean.utils.globals import current_domain

from storefront.inventory.warehouse import Warehouse


def active_warehouses():
    """Active warehouses ordered by name."""
    repo = current_domain.repository_for(Warehouse)
    warehouses = repo._dao.query.filter(is_active=True).all().items
    return sorted(warehouses, key=lambda w: w.name)


def _locality_rank(warehouse, pincode):
    if not pincode:
        return 0
    if warehouse.pincode == pincode:
        return 0
    if (warehouse.pincode or "")[:3] == pincode[:3]:
        return 1
    return 2


def rank_warehouses(warehouses, pincode=None):
    """Order by locality: exact pincode, then same 3-digit prefix, then the rest.

    The sort is stable, so name order is kept within each group.
    """
    return sorted(warehouses, key=lambda w: _locality_rank(w, pincode))


def find_warehouse_with_stock(lines, pincode=None):
    """Return the first active warehouse able to fulfill every line, or None."""
    for warehouse in rank_warehouses(active_warehouses(), pincode):
        if warehouse.can_fulfill(lines):
            return warehouse
    return None


def check_global_availability(lines):
    """Total available stock across active warehouses for each requested product."""
    warehouses = active_warehouses()
    result = {}
    for line in lines:
        available = sum(w.available_for(line["product_id"]) for w in warehouses)
        result[line["product_id"]] = {
            "available": available,
            "required": line["quantity"],
            "sufficient": available >= line["quantity"],
        }
    return result


def stock_snapshot(warehouse_id=None):
    """Plain-dict view of stock records, for admin inventory screens."""
    repo = current_domain.repository_for(Warehouse)
    if warehouse_id:
        warehouses = [repo.get(warehouse_id)]
    else:
        warehouses = sorted(repo._dao.query.all().items, key=lambda w: w.name)

    return [
        {
            "warehouse_id": str(w.id),
            "warehouse_name": w.name,
            "pincode": w.pincode,
            "is_active": w.is_active,
            "product_id": str(r.product_id),
            "quantity": r.quantity,
            "reserved_quantity": r.reserved_quantity,
            "available": r.available,
        }
        for w in warehouses
        for r in (w.stock_records or [])
    ]
