from __future__ import annotations

import re
from typing import Any, List, Optional

from pymongo import MongoClient
from pymongo.errors import PyMongoError

from .errors import BackendUnavailable
from .logs import log_event

LIST_REMOVE_ATTEMPTS = 16


class MongoStorage:
    """Backend kept in two MongoDB collections: ``kv`` and ``lists``.

    Appends use ``$push`` so they are atomic per list document. Removing the
    first occurrence has no single-operator form, so it is a compare-and-set
    on the whole array, retried while other writers keep changing it.
    """

    def __init__(self, uri: str, db_name: str = "tribbler", client: Any = None) -> None:
        try:
            self.client = client if client is not None else MongoClient(
                uri, serverSelectionTimeoutMS=1200, connectTimeoutMS=1200
            )
            self.client.admin.command("ping")
        except PyMongoError as ex:
            log_event("mongo_init_failed", error=str(ex))
            raise BackendUnavailable(f"mongo at {uri} unreachable: {ex}") from ex
        self.db = self.client[db_name]
        self.kv = self.db["kv"]
        self.lists = self.db["lists"]

    def get(self, key: str) -> Optional[str]:
        try:
            doc = self.kv.find_one({"_id": key})
        except PyMongoError as ex:
            raise BackendUnavailable(str(ex)) from ex
        return doc["value"] if doc else None

    def set(self, key: str, value: str) -> bool:
        try:
            if value == "":
                self.kv.delete_one({"_id": key})
            else:
                self.kv.update_one({"_id": key}, {"$set": {"value": value}}, upsert=True)
        except PyMongoError as ex:
            raise BackendUnavailable(str(ex)) from ex
        return True

    def keys(self, prefix: str = "") -> List[str]:
        try:
            docs = self.kv.find({"_id": {"$regex": "^" + re.escape(prefix)}}, {"_id": 1})
            return sorted(doc["_id"] for doc in docs)
        except PyMongoError as ex:
            raise BackendUnavailable(str(ex)) from ex

    def list_get(self, key: str) -> List[str]:
        try:
            doc = self.lists.find_one({"_id": key})
        except PyMongoError as ex:
            raise BackendUnavailable(str(ex)) from ex
        return list(doc.get("items", [])) if doc else []

    def list_append(self, key: str, value: str) -> bool:
        try:
            self.lists.update_one({"_id": key}, {"$push": {"items": value}}, upsert=True)
        except PyMongoError as ex:
            raise BackendUnavailable(str(ex)) from ex
        return True

    def list_remove(self, key: str, value: str) -> int:
        try:
            for _ in range(LIST_REMOVE_ATTEMPTS):
                doc = self.lists.find_one({"_id": key})
                items = list(doc.get("items", [])) if doc else []
                if value not in items:
                    return 0
                trimmed = list(items)
                trimmed.remove(value)
                res = self.lists.update_one({"_id": key, "items": items}, {"$set": {"items": trimmed}})
                if res.modified_count == 1:
                    return 1
        except PyMongoError as ex:
            raise BackendUnavailable(str(ex)) from ex
        raise BackendUnavailable(f"list {key!r} kept changing during remove")
