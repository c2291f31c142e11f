"""
Cart line bookkeeping.

A cart stores its lines as ``[{"productId": ObjectId, "quantity": int}, ...]``
with at most one line per product. These helpers mutate that list in place
and are shared by the cart routes.
"""

from typing import Dict, List, Optional

from bson import ObjectId


def find_line(lines: List[dict], product_id: ObjectId) -> int:
    for index, line in enumerate(lines):
        if str(line.get("productId")) == str(product_id):
            return index
    return -1


def add_product(lines: List[dict], product_id: ObjectId) -> dict:
    """
    Adds one unit of a product: increments the existing line or appends a
    new line with quantity 1. Returns the affected line.
    """
    index = find_line(lines, product_id)
    if index != -1:
        lines[index]["quantity"] = int(lines[index].get("quantity", 1)) + 1
        return lines[index]
    line = {"productId": product_id, "quantity": 1}
    lines.append(line)
    return line


def set_quantity(lines: List[dict], product_id: ObjectId, quantity: int) -> bool:
    """
    Sets the quantity of a line; a quantity of 0 removes it.
    Returns False when the product has no line in the cart.
    """
    if quantity < 0:
        raise ValueError("quantity must not be negative")
    index = find_line(lines, product_id)
    if index == -1:
        return False
    if quantity == 0:
        lines.pop(index)
    else:
        lines[index]["quantity"] = quantity
    return True


def remove_product(lines: List[dict], product_id: ObjectId) -> List[dict]:
    return [line for line in lines if str(line.get("productId")) != str(product_id)]


def summarize(lines: List[dict], products: Dict[str, Optional[dict]]) -> dict:
    '''
    Totals over the lines whose product still exists and is available
    '''
    total_items = 0
    total_price = 0
    for line in lines:
        product = products.get(str(line.get("productId")))
        if not product or not product.get("available", True):
            continue
        quantity = int(line.get("quantity", 1))
        total_items += quantity
        total_price += product.get("price", 0) * quantity
    return {"totalItems": total_items, "totalPrice": total_price}


def merge_with_products(lines: List[dict], products: Dict[str, Optional[dict]]) -> List[dict]:
    """
    Product documents extended with the cart quantity and productId,
    skipping lines whose product was deleted.
    """
    items = []
    for line in lines:
        product = products.get(str(line.get("productId")))
        if not product:
            continue
        items.append({
            **product,
            "quantity": line.get("quantity", 1),
            "productId": str(line.get("productId")),
        })
    return items
