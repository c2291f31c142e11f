import logging
from datetime import datetime, timezone

from bson import ObjectId
from fastapi import APIRouter, Depends, HTTPException
from pymongo import ReturnDocument

from techit.core.auth import get_payload, parse_object_id
from techit.core.database import get_db
from techit.core.serializers import serializeItem
from techit.models.cart_model import AddToCartModel, CartModel, QuantityModel
from techit.services.cart_items import add_product, merge_with_products, remove_product, set_quantity, summarize

logger = logging.getLogger(__name__)

carts_route = APIRouter(prefix="/api/carts", tags=["Carts"])


async def findActiveCart(db, payload: dict):
    return await db["carts"].find_one({"userId": ObjectId(payload["_id"]), "active": True})


async def saveCartLines(db, cart: dict, lines: list):
    await db["carts"].update_one(
        {"_id": cart["_id"]},
        {"$set": {"products": lines, "updatedAt": datetime.now(timezone.utc)}},
    )


async def loadProducts(db, lines: list) -> dict:
    ids = [line["productId"] for line in lines]
    products = await db["products"].find({"_id": {"$in": ids}}).to_list(length=None)
    return {str(p["_id"]): serializeItem(p) for p in products}


async def takeFromStock(db, product_oid: ObjectId):
    product = await db["products"].find_one_and_update(
        {"_id": product_oid, "quantity": {"$gt": 0}},
        {"$inc": {"quantity": -1}},
        return_document=ReturnDocument.AFTER,
    )
    if product and product.get("quantity") == 0:
        await db["products"].update_one({"_id": product_oid}, {"$set": {"available": False}})
        logger.info("Product %s is out of stock", product_oid)


'''
Adds one unit of a product to the caller's cart, creating the cart when needed
'''
@carts_route.patch("")
async def addToCart(item: AddToCartModel, payload: dict = Depends(get_payload), db=Depends(get_db)):
    product_oid = parse_object_id(item.productId)

    product = await db["products"].find_one({"_id": product_oid})
    if not product:
        raise HTTPException(status_code=404, detail="No such product")
    if not product.get("available", True):
        raise HTTPException(status_code=400, detail="Product not available")

    cart = await findActiveCart(db, payload)
    if not cart:
        cart = CartModel(userId=ObjectId(payload["_id"]), products=[{"productId": product_oid, "quantity": 1}])
        await db["carts"].insert_one(cart.model_dump())
    else:
        lines = cart.get("products", [])
        add_product(lines, product_oid)
        await saveCartLines(db, cart, lines)

    await takeFromStock(db, product_oid)

    return {"status": "SUCCESS", "message": "Product has been added to cart"}


'''
Fetches the cart lines joined with their product details
'''
@carts_route.get("")
async def getCart(payload: dict = Depends(get_payload), db=Depends(get_db)):
    cart = await findActiveCart(db, payload)
    if not cart or not cart.get("products"):
        return []

    lines = cart["products"]
    return merge_with_products(lines, await loadProducts(db, lines))


@carts_route.get("/summary")
async def getCartSummary(payload: dict = Depends(get_payload), db=Depends(get_db)):
    cart = await findActiveCart(db, payload)
    if not cart or not cart.get("products"):
        return {"totalItems": 0, "totalPrice": 0}

    lines = cart["products"]
    return summarize(lines, await loadProducts(db, lines))


@carts_route.delete("/{productId}")
async def removeFromCart(productId: str, payload: dict = Depends(get_payload), db=Depends(get_db)):
    product_oid = parse_object_id(productId)

    cart = await findActiveCart(db, payload)
    if not cart:
        raise HTTPException(status_code=404, detail="No cart found")

    await saveCartLines(db, cart, remove_product(cart.get("products", []), product_oid))
    return {"status": "SUCCESS", "message": "Product removed from cart successfully"}


@carts_route.delete("")
async def clearCart(payload: dict = Depends(get_payload), db=Depends(get_db)):
    cart = await findActiveCart(db, payload)
    if not cart:
        raise HTTPException(status_code=404, detail="No cart found")

    await saveCartLines(db, cart, [])
    return {"status": "SUCCESS", "message": "Cart cleared successfully"}


'''
Sets the quantity of a cart line; quantity 0 removes the line
'''
@carts_route.put("/{productId}")
async def updateCartQuantity(productId: str, data: QuantityModel, payload: dict = Depends(get_payload), db=Depends(get_db)):
    product_oid = parse_object_id(productId)

    cart = await findActiveCart(db, payload)
    if not cart:
        raise HTTPException(status_code=404, detail="No cart found")

    lines = cart.get("products", [])
    if not set_quantity(lines, product_oid, data.quantity):
        raise HTTPException(status_code=404, detail="Product not found in cart")

    await saveCartLines(db, cart, lines)
    return {"status": "SUCCESS", "message": "Cart updated successfully"}
