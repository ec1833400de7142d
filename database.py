"""
Database handle for the storefront.

A ``Store`` wraps one MongoDB database. It is opened by the application
lifespan (or handed in directly, e.g. a mongomock client in tests) and
reaches request handlers through the ``get_store`` dependency.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import HTTPException, Request
from pydantic import BaseModel
from pymongo import MongoClient

from settings import Settings

logger = logging.getLogger(__name__)


class Store:
    def __init__(self, client: MongoClient, name: str):
        self.client = client
        self.name = name
        self.db = client[name]

    def __getitem__(self, collection_name: str):
        return self.db[collection_name]

    def create_document(self, collection_name: str, data: Union[BaseModel, dict]) -> str:
        if isinstance(data, BaseModel):
            data_dict = data.model_dump()
        else:
            data_dict = dict(data)
        now = datetime.now(timezone.utc)
        data_dict["created_at"] = now
        data_dict["updated_at"] = now
        result = self.db[collection_name].insert_one(data_dict)
        return str(result.inserted_id)

    def get_documents(self, collection_name: str, filter_dict: Optional[dict] = None,
                      sort=None, limit: Optional[int] = None):
        cursor = self.db[collection_name].find(filter_dict or {})
        if sort:
            cursor = cursor.sort(sort)
        if limit:
            cursor = cursor.limit(limit)
        return list(cursor)

    def ensure_indexes(self):
        self.db["user"].create_index("email", unique=True)
        self.db["order"].create_index([("user_id", 1), ("created_at", -1)])
        self.db["review"].create_index([("product_id", 1), ("created_at", -1)])
        self.db["notification"].create_index("user_id")

    def close(self):
        self.client.close()


def open_store(settings: Settings) -> Store:
    logger.info("Connecting to MongoDB database %s", settings.database_name)
    client = MongoClient(settings.database_url, serverSelectionTimeoutMS=5000)
    return Store(client, settings.database_name)


def get_store(request: Request) -> Store:
    return request.app.state.store


def object_id(value: str, detail: str = "Not found") -> ObjectId:
    """Parse a path id; an id that cannot exist is reported as not found."""
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        raise HTTPException(status_code=404, detail=detail)


def serialize_doc(doc: Optional[Dict[str, Any]]):
    if not doc:
        return doc
    doc = dict(doc)
    _id = doc.get("_id")
    if isinstance(_id, ObjectId):
        doc["id"] = str(_id)
        del doc["_id"]
    for k, v in list(doc.items()):
        if isinstance(v, datetime):
            doc[k] = v.isoformat()
        elif isinstance(v, ObjectId):
            doc[k] = str(v)
    return doc
