import logging
import re
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from techit.core.auth import ensure_admin, get_payload, parse_object_id
from techit.core.database import get_db
from techit.core.rate_limiter import admin_limit
from techit.core.serializers import serializeItem
from techit.models.product_model import ProductModel, ProductPatchModel

logger = logging.getLogger(__name__)

products_route = APIRouter(prefix="/api/products", tags=["Products"])

INVALID_PRODUCT_ID = "מזהה מוצר לא תקין"


'''
Adds a product to the catalog (admins only)
'''
@products_route.post("", status_code=201)
async def addProduct(product: ProductModel, payload: dict = Depends(admin_limit), db=Depends(get_db)):
    ensure_admin(payload)
    productsCollection = db["products"]

    if await productsCollection.find_one({"name": product.name}):
        raise HTTPException(status_code=400, detail="Product already exists")

    result = await productsCollection.insert_one(product.to_document())
    logger.info("Product %s (%s) added by %s", result.inserted_id, product.name, payload["_id"])
    return {
        "status": "SUCCESS",
        "message": "Product has been added successfully :)",
        "_id": str(result.inserted_id),
    }


'''
Fetches the catalog, optionally narrowed by category or a free-text search
'''
@products_route.get("")
async def getAllProducts(
    category: Optional[str] = Query(None),
    search: Optional[str] = Query(None, min_length=1),
    payload: dict = Depends(get_payload),
    db=Depends(get_db),
):
    query = {}
    if category:
        query["category"] = category
    if search:
        pattern = {"$regex": re.escape(search), "$options": "i"}
        query["$or"] = [{"name": pattern}, {"category": pattern}, {"description": pattern}]

    products = await db["products"].find(query).to_list(length=None)
    return [serializeItem(p) for p in products]


@products_route.get("/{productId}")
async def getProduct(productId: str, payload: dict = Depends(get_payload), db=Depends(get_db)):
    product = await db["products"].find_one({"_id": parse_object_id(productId, INVALID_PRODUCT_ID)})
    if not product:
        raise HTTPException(status_code=404, detail="No such product")
    return serializeItem(product)


'''
Replaces every field of a product; the body is validated like a new product
'''
@products_route.put("/{productId}")
async def updateProduct(productId: str, product: ProductModel, payload: dict = Depends(admin_limit), db=Depends(get_db)):
    ensure_admin(payload)

    result = await db["products"].update_one(
        {"_id": parse_object_id(productId, INVALID_PRODUCT_ID)},
        {"$set": product.to_document()},
    )
    if not result.matched_count:
        raise HTTPException(status_code=404, detail="No such product")

    return {"status": "SUCCESS", "message": "Product update successfully"}


'''
Updates only the fields present in the body
'''
@products_route.patch("/{productId}")
async def patchProduct(productId: str, data: ProductPatchModel, payload: dict = Depends(admin_limit), db=Depends(get_db)):
    ensure_admin(payload)
    product_oid = parse_object_id(productId, INVALID_PRODUCT_ID)
    productsCollection = db["products"]

    updateData = data.model_dump(exclude_unset=True)
    if updateData:
        result = await productsCollection.update_one({"_id": product_oid}, {"$set": updateData})
        found = result.matched_count
    else:
        found = await productsCollection.count_documents({"_id": product_oid})

    if not found:
        raise HTTPException(status_code=404, detail="No such product")

    return {"status": "SUCCESS", "message": "Product has been updated successfully!"}


@products_route.delete("/{productId}")
async def deleteProduct(productId: str, payload: dict = Depends(admin_limit), db=Depends(get_db)):
    ensure_admin(payload)

    deleted = await db["products"].delete_one({"_id": parse_object_id(productId, INVALID_PRODUCT_ID)})
    if deleted.deleted_count == 0:
        raise HTTPException(status_code=404, detail="No such product")

    logger.info("Product %s deleted by %s", productId, payload["_id"])
    return {"status": "SUCCESS", "message": "Product has been deleted successfully!"}
