import logging

from bson import ObjectId
from fastapi import APIRouter, Depends, HTTPException
from pymongo.errors import DuplicateKeyError

from techit.core.auth import ensure_admin, get_payload, parse_object_id
from techit.core.database import get_db
from techit.core.rate_limiter import admin_limit
from techit.core.serializers import serializeItem
from techit.models.favorite_model import FavoriteModel, FavoriteRequestModel

logger = logging.getLogger(__name__)

favorites_route = APIRouter(prefix="/api/favorites", tags=["Favorites"])


'''
Fetches the caller's favorite products; favorites of deleted products are skipped
'''
@favorites_route.get("")
async def getFavorites(payload: dict = Depends(get_payload), db=Depends(get_db)):
    favorites = await db["favorites"].find({"userId": ObjectId(payload["_id"])}).sort("_id", 1).to_list(length=None)
    if not favorites:
        return []

    ids = [fav["productId"] for fav in favorites]
    products = await db["products"].find({"_id": {"$in": ids}}).to_list(length=None)
    productsById = {p["_id"]: p for p in products}

    return [serializeItem(productsById[pid]) for pid in ids if pid in productsById]


@favorites_route.post("", status_code=201)
async def addFavorite(data: FavoriteRequestModel, payload: dict = Depends(get_payload), db=Depends(get_db)):
    product_oid = parse_object_id(data.productId)

    if not await db["products"].find_one({"_id": product_oid}):
        raise HTTPException(status_code=404, detail="המוצר לא נמצא")

    favorite = FavoriteModel(userId=ObjectId(payload["_id"]), productId=product_oid)
    favoritesCollection = db["favorites"]

    if await favoritesCollection.find_one({"userId": favorite.userId, "productId": favorite.productId}):
        raise HTTPException(status_code=400, detail="המוצר כבר במועדפים")

    try:
        await favoritesCollection.insert_one(favorite.model_dump())
    except DuplicateKeyError:
        raise HTTPException(status_code=400, detail="המוצר כבר במועדפים")

    return {"status": "SUCCESS", "message": "המוצר נוסף למועדפים בהצלחה"}


@favorites_route.delete("/{productId}")
async def removeFavorite(productId: str, payload: dict = Depends(get_payload), db=Depends(get_db)):
    favorite = await db["favorites"].find_one_and_delete({
        "userId": ObjectId(payload["_id"]),
        "productId": parse_object_id(productId),
    })
    if not favorite:
        raise HTTPException(status_code=404, detail="המוצר לא נמצא במועדפים")

    return {"status": "SUCCESS", "message": "המוצר הוסר מהמועדפים בהצלחה"}


@favorites_route.get("/check/{productId}")
async def checkFavorite(productId: str, payload: dict = Depends(get_payload), db=Depends(get_db)):
    favorite = await db["favorites"].find_one({
        "userId": ObjectId(payload["_id"]),
        "productId": parse_object_id(productId),
    })
    return {"isFavorite": favorite is not None}


'''
Favorite counts per product, most favorited first (admins only)
'''
@favorites_route.get("/stats")
async def getFavoritesStats(payload: dict = Depends(admin_limit), db=Depends(get_db)):
    ensure_admin(payload, "אין הרשאה לצפייה בנתונים")

    groups = await db["favorites"].aggregate([
        {"$group": {"_id": "$productId", "favoriteCount": {"$sum": 1}}},
        {"$sort": {"favoriteCount": -1}},
    ]).to_list(length=None)
    if not groups:
        return []

    products = await db["products"].find(
        {"_id": {"$in": [group["_id"] for group in groups]}},
        {"name": 1, "category": 1},
    ).to_list(length=None)
    productsById = {p["_id"]: p for p in products}

    # favorites of deleted products are dropped
    return [
        {
            "_id": str(group["_id"]),
            "productName": productsById[group["_id"]].get("name"),
            "productCategory": productsById[group["_id"]].get("category"),
            "favoriteCount": group["favoriteCount"],
        }
        for group in groups
        if group["_id"] in productsById
    ]
