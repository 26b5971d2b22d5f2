# inventory/api/lines.py

"""
Turns validated line payloads ({"item_id": ..., ...}) into the service
shape ({"item": Item, ...}) with a single item query.
"""

from inventory.models import Item
from inventory.services.exceptions import NotFoundError


def resolve_item_lines(lines: list[dict]) -> list[dict]:
    ids = {line["item_id"] for line in lines}
    items = {i.id: i for i in Item.objects.filter(id__in=ids, is_active=True)}

    missing = [str(i) for i in ids if i not in items]
    if missing:
        raise NotFoundError(f"Item not found: {', '.join(sorted(missing))}")

    resolved = []
    for line in lines:
        row = {k: v for k, v in line.items() if k != "item_id"}
        row["item"] = items[line["item_id"]]
        resolved.append(row)
    return resolved
