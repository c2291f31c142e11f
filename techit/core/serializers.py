from datetime import datetime, timezone

from bson import ObjectId


def convert_objectids_and_dates(obj):
    """
    Recursively converts ObjectId to str and datetime to ISO-8601 string.
    """
    if isinstance(obj, dict):
        return {k: convert_objectids_and_dates(v) for k, v in obj.items()}

    elif isinstance(obj, list):
        return [convert_objectids_and_dates(i) for i in obj]

    elif isinstance(obj, ObjectId):
        return str(obj)

    elif isinstance(obj, datetime):
        if obj.tzinfo is None:
            obj = obj.replace(tzinfo=timezone.utc)
        return obj.isoformat()

    else:
        return obj


def serializeItem(item, hidden=("password",)):
    if item is None:
        return None
    item = convert_objectids_and_dates(item)
    for field in hidden:
        item.pop(field, None)
    return item
