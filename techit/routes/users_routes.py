import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import PlainTextResponse
from pymongo.errors import DuplicateKeyError

from techit.core.auth import ensure_admin, get_payload, parse_object_id
from techit.core.auth_utils import create_token, hash_password, verify_password
from techit.core.database import get_db
from techit.core.rate_limiter import admin_limit, login_guard
from techit.core.serializers import serializeItem
from techit.models.cart_model import CartModel
from techit.models.user_model import LoginModel, RegisterModel, RoleUpdateModel, UserModel

logger = logging.getLogger(__name__)

users_route = APIRouter(prefix="/api/users", tags=["Users"])

INVALID_USER_ID = "מזהה משתמש לא תקין"


'''
    Registers a user, opens an empty cart for them and returns their token
'''
@users_route.post("", response_class=PlainTextResponse, status_code=201)
async def registerUser(user: RegisterModel, db=Depends(get_db)):
    usersCollection = db["users"]

    existing_user = await usersCollection.find_one({"email": user.email})
    if existing_user:
        raise HTTPException(status_code=400, detail="User already exists")

    document = UserModel(
        name=user.name,
        email=user.email,
        password=hash_password(user.password),
        isAdmin=user.isAdmin,
    ).model_dump()

    try:
        result = await usersCollection.insert_one(document)
    except DuplicateKeyError:
        raise HTTPException(status_code=400, detail="User already exists")

    cart = CartModel(userId=result.inserted_id)
    await db["carts"].insert_one(cart.model_dump())

    logger.info("Registered user %s (admin=%s)", result.inserted_id, user.isAdmin)
    return PlainTextResponse(create_token({"_id": result.inserted_id, "isAdmin": user.isAdmin}), status_code=201)


'''
    Checks the credentials and returns a fresh token. Only failed attempts count
    towards the login limit.
'''
@users_route.post("/login", response_class=PlainTextResponse, dependencies=[Depends(login_guard)])
async def login(request: Request, credentials: LoginModel, db=Depends(get_db)):
    user = await db["users"].find_one({"email": credentials.email})

    if not user or not verify_password(credentials.password, user.get("password", "")):
        request.app.state.limiters.login.hit(request)
        raise HTTPException(status_code=400, detail="Email or password are incorrect")

    return PlainTextResponse(create_token(user))


@users_route.get("/profile")
async def getProfile(payload: dict = Depends(get_payload), db=Depends(get_db)):
    user = await db["users"].find_one({"_id": parse_object_id(payload["_id"], INVALID_USER_ID)})
    if not user:
        raise HTTPException(status_code=404, detail="No such user")

    user = serializeItem(user)
    return {key: user.get(key) for key in ("_id", "email", "name", "isAdmin")}


@users_route.get("/all")
async def getAllUsers(payload: dict = Depends(admin_limit), db=Depends(get_db)):
    ensure_admin(payload, "אין הרשאה לצפייה במשתמשים")

    users = await db["users"].find({}, {"password": 0}).sort("name", 1).to_list(length=None)
    return [serializeItem(user) for user in users]


@users_route.patch("/{userId}/role")
async def updateUserRole(userId: str, role: RoleUpdateModel, payload: dict = Depends(admin_limit), db=Depends(get_db)):
    ensure_admin(payload, "אין הרשאה לשינוי הרשאות")

    if userId == payload["_id"]:
        raise HTTPException(status_code=400, detail="לא ניתן לשנות את ההרשאות של עצמך")

    result = await db["users"].update_one(
        {"_id": parse_object_id(userId, INVALID_USER_ID)},
        {"$set": {"isAdmin": role.isAdmin}},
    )
    if not result.matched_count:
        raise HTTPException(status_code=404, detail="משתמש לא נמצא")

    logger.info("User %s set isAdmin=%s on %s", payload["_id"], role.isAdmin, userId)
    return {"status": "SUCCESS", "message": "הרשאות המשתמש עודכנו בהצלחה"}


'''
    Deletes a user together with their carts and favorites
'''
@users_route.delete("/{userId}")
async def deleteUser(userId: str, payload: dict = Depends(admin_limit), db=Depends(get_db)):
    ensure_admin(payload, "אין הרשאה למחיקת משתמשים")

    if userId == payload["_id"]:
        raise HTTPException(status_code=400, detail="לא ניתן למחוק את עצמך")

    user_oid = parse_object_id(userId, INVALID_USER_ID)
    deleted_user = await db["users"].delete_one({"_id": user_oid})
    if deleted_user.deleted_count == 0:
        raise HTTPException(status_code=404, detail="משתמש לא נמצא")

    await db["carts"].delete_many({"userId": user_oid})
    await db["favorites"].delete_many({"userId": user_oid})

    logger.info("User %s deleted user %s", payload["_id"], userId)
    return {"status": "SUCCESS", "message": "המשתמש נמחק בהצלחה"}
