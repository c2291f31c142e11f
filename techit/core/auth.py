import logging

from bson import ObjectId
from fastapi import Header, HTTPException
from jose import JWTError

from techit.core.auth_utils import decode_token

logger = logging.getLogger(__name__)

INVALID_ID_MESSAGE = "מזהה מוצר לא תקין"


def extract_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    token = authorization.strip()
    if token.lower().startswith("bearer "):
        token = token[7:].strip()
    return token or None


def get_payload(authorization: str | None = Header(default=None)) -> dict:
    '''
    Decoded JWT claims of the caller ({"_id", "isAdmin"})
    '''
    token = extract_token(authorization)
    if not token:
        raise HTTPException(status_code=401, detail="Access denied. No token provided")
    try:
        payload = decode_token(token)
    except JWTError as e:
        logger.debug("Rejected token: %s", e)
        raise HTTPException(status_code=400, detail="Invalid token")
    if not ObjectId.is_valid(str(payload.get("_id", ""))):
        raise HTTPException(status_code=400, detail="Invalid token")
    return payload


def optional_payload(authorization: str | None) -> dict | None:
    token = extract_token(authorization)
    if not token:
        return None
    try:
        return decode_token(token)
    except JWTError:
        return None


def ensure_admin(payload: dict, message: str = "Access denied"):
    if payload.get("isAdmin") is not True:
        raise HTTPException(status_code=403, detail=message)


def parse_object_id(value: str, message: str = INVALID_ID_MESSAGE) -> ObjectId:
    if not ObjectId.is_valid(value):
        raise HTTPException(status_code=400, detail=message)
    return ObjectId(value)
