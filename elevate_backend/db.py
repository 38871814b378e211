"""
Document store abstraction for MongoDB and an in-memory test implementation.
"""

from __future__ import annotations

import copy
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Iterable, Optional, Protocol

from bson import ObjectId
from pymongo import DESCENDING, MongoClient
from pymongo.server_api import ServerApi

SCHOLARSHIP_SEARCH_FIELDS = ("universityName", "scholarshipName", "degree")
USER_SEARCH_FIELDS = ("displayName", "email")

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class DbClient(Protocol):
    """Interface for document store access."""

    def list_scholarships(
        self, search: Optional[str] = None, limit: int = 10
    ) -> list[dict]:
        ...

    def get_scholarship(self, scholarship_id: ObjectId) -> Optional[dict]:
        ...

    def insert_scholarship(self, doc: dict) -> ObjectId:
        ...

    def update_scholarship(
        self, scholarship_id: ObjectId, fields: dict
    ) -> "UpdateResult":
        ...

    def delete_scholarship(self, scholarship_id: ObjectId) -> int:
        ...

    def get_user(self, email: str) -> Optional[dict]:
        ...

    def insert_user(self, doc: dict) -> ObjectId:
        ...

    def update_user(self, email: str, fields: dict) -> "UpdateResult":
        ...

    def list_users(self, search: Optional[str] = None, limit: int = 10) -> list[dict]:
        ...

    def insert_review(self, doc: dict) -> ObjectId:
        ...

    def get_review(self, review_id: ObjectId) -> Optional[dict]:
        ...

    def list_reviews(
        self, email: Optional[str] = None, scholarship_id: Optional[str] = None
    ) -> list[dict]:
        ...

    def delete_review(self, review_id: ObjectId) -> int:
        ...

    def find_application(
        self, user_email: str, scholarship_id: str
    ) -> Optional[dict]:
        ...

    def insert_application(self, doc: dict) -> ObjectId:
        ...

    def list_applications(self, user_email: Optional[str] = None) -> list[dict]:
        ...

    def update_application(
        self, application_id: ObjectId, fields: dict
    ) -> "UpdateResult":
        ...

    def delete_application(self, application_id: ObjectId) -> int:
        ...


@dataclass
class UpdateResult:
    matched_count: int
    modified_count: int

    def as_dict(self) -> dict:
        return {
            "acknowledged": True,
            "matchedCount": self.matched_count,
            "modifiedCount": self.modified_count,
        }


def search_filter(search: Optional[str], fields: Iterable[str]) -> dict:
    """
    Build a case-insensitive literal substring match over ``fields`` (OR).

    The search text is escaped so user input never acts as a regex.
    """
    if not search:
        return {}
    pattern = re.escape(search)
    return {"$or": [{f: {"$regex": pattern, "$options": "i"}} for f in fields]}


def _matches_search(doc: dict, search: Optional[str], fields: Iterable[str]) -> bool:
    if not search:
        return True
    needle = search.lower()
    return any(needle in str(doc.get(f) or "").lower() for f in fields)


def _newest_first(docs: Iterable[dict], key: str) -> list[dict]:
    return sorted(
        docs,
        key=lambda d: (d.get(key) or _EPOCH, d["_id"]),
        reverse=True,
    )


def _apply_fields(doc: dict, fields: dict) -> bool:
    modified = False
    for name, value in fields.items():
        if doc.get(name, object()) != value:
            doc[name] = copy.deepcopy(value)
            modified = True
    return modified


class InMemoryDbClient:
    """Simple in-memory document store for development and tests."""

    def __init__(self):
        self.scholarships: Dict[ObjectId, dict] = {}
        self.users: Dict[str, dict] = {}
        self.reviews: Dict[ObjectId, dict] = {}
        self.applications: Dict[ObjectId, dict] = {}

    def _insert(self, collection: Dict, key, doc: dict) -> ObjectId:
        stored = copy.deepcopy(doc)
        stored.setdefault("_id", ObjectId())
        collection[key if key is not None else stored["_id"]] = stored
        return stored["_id"]

    def _update(self, doc: Optional[dict], fields: dict) -> UpdateResult:
        if doc is None:
            return UpdateResult(matched_count=0, modified_count=0)
        modified = _apply_fields(doc, fields)
        return UpdateResult(matched_count=1, modified_count=int(modified))

    def list_scholarships(
        self, search: Optional[str] = None, limit: int = 10
    ) -> list[dict]:
        docs = [
            d
            for d in self.scholarships.values()
            if _matches_search(d, search, SCHOLARSHIP_SEARCH_FIELDS)
        ]
        return copy.deepcopy(_newest_first(docs, "createdAt")[:limit])

    def get_scholarship(self, scholarship_id: ObjectId) -> Optional[dict]:
        return copy.deepcopy(self.scholarships.get(scholarship_id))

    def insert_scholarship(self, doc: dict) -> ObjectId:
        return self._insert(self.scholarships, None, doc)

    def update_scholarship(self, scholarship_id: ObjectId, fields: dict) -> UpdateResult:
        return self._update(self.scholarships.get(scholarship_id), fields)

    def delete_scholarship(self, scholarship_id: ObjectId) -> int:
        return int(self.scholarships.pop(scholarship_id, None) is not None)

    def get_user(self, email: str) -> Optional[dict]:
        return copy.deepcopy(self.users.get(email))

    def insert_user(self, doc: dict) -> ObjectId:
        return self._insert(self.users, doc["email"], doc)

    def update_user(self, email: str, fields: dict) -> UpdateResult:
        return self._update(self.users.get(email), fields)

    def list_users(self, search: Optional[str] = None, limit: int = 10) -> list[dict]:
        docs = [
            d for d in self.users.values() if _matches_search(d, search, USER_SEARCH_FIELDS)
        ]
        return copy.deepcopy(_newest_first(docs, "createdAt")[:limit])

    def insert_review(self, doc: dict) -> ObjectId:
        return self._insert(self.reviews, None, doc)

    def get_review(self, review_id: ObjectId) -> Optional[dict]:
        return copy.deepcopy(self.reviews.get(review_id))

    def list_reviews(
        self, email: Optional[str] = None, scholarship_id: Optional[str] = None
    ) -> list[dict]:
        docs = [
            d
            for d in self.reviews.values()
            if (not email or d.get("email") == email)
            and (not scholarship_id or d.get("scholarshipId") == scholarship_id)
        ]
        return copy.deepcopy(_newest_first(docs, "createdAt"))

    def delete_review(self, review_id: ObjectId) -> int:
        return int(self.reviews.pop(review_id, None) is not None)

    def find_application(self, user_email: str, scholarship_id: str) -> Optional[dict]:
        for doc in self.applications.values():
            if doc.get("userEmail") == user_email and doc.get("scholarshipId") == scholarship_id:
                return copy.deepcopy(doc)
        return None

    def insert_application(self, doc: dict) -> ObjectId:
        return self._insert(self.applications, None, doc)

    def list_applications(self, user_email: Optional[str] = None) -> list[dict]:
        docs = [
            d
            for d in self.applications.values()
            if not user_email or d.get("userEmail") == user_email
        ]
        return copy.deepcopy(_newest_first(docs, "applicationDate"))

    def update_application(self, application_id: ObjectId, fields: dict) -> UpdateResult:
        return self._update(self.applications.get(application_id), fields)

    def delete_application(self, application_id: ObjectId) -> int:
        return int(self.applications.pop(application_id, None) is not None)


class MongoDbClient:
    """
    pymongo-backed implementation. Accepts an existing client (e.g. mongomock in tests).
    """

    def __init__(
        self,
        uri: Optional[str],
        db_name: str,
        client: Optional[MongoClient] = None,
    ):
        if client is None:
            if not uri:
                raise ValueError("MONGODB_URI is required for MongoDbClient")
            client = MongoClient(
                uri,
                tz_aware=True,
                server_api=ServerApi("1", strict=True, deprecation_errors=True),
            )
        self.client = client
        database = client[db_name]
        self.scholarships = database["scholarships"]
        self.users = database["users"]
        self.reviews = database["reviews"]
        self.applications = database["applications"]

    @staticmethod
    def _to_update_result(result) -> UpdateResult:
        return UpdateResult(
            matched_count=result.matched_count, modified_count=result.modified_count
        )

    def list_scholarships(
        self, search: Optional[str] = None, limit: int = 10
    ) -> list[dict]:
        cursor = (
            self.scholarships.find(search_filter(search, SCHOLARSHIP_SEARCH_FIELDS))
            .sort([("createdAt", DESCENDING), ("_id", DESCENDING)])
            .limit(limit)
        )
        return list(cursor)

    def get_scholarship(self, scholarship_id: ObjectId) -> Optional[dict]:
        return self.scholarships.find_one({"_id": scholarship_id})

    def insert_scholarship(self, doc: dict) -> ObjectId:
        return self.scholarships.insert_one(dict(doc)).inserted_id

    def update_scholarship(self, scholarship_id: ObjectId, fields: dict) -> UpdateResult:
        result = self.scholarships.update_one({"_id": scholarship_id}, {"$set": fields})
        return self._to_update_result(result)

    def delete_scholarship(self, scholarship_id: ObjectId) -> int:
        return self.scholarships.delete_one({"_id": scholarship_id}).deleted_count

    def get_user(self, email: str) -> Optional[dict]:
        return self.users.find_one({"email": email})

    def insert_user(self, doc: dict) -> ObjectId:
        return self.users.insert_one(dict(doc)).inserted_id

    def update_user(self, email: str, fields: dict) -> UpdateResult:
        result = self.users.update_one({"email": email}, {"$set": fields})
        return self._to_update_result(result)

    def list_users(self, search: Optional[str] = None, limit: int = 10) -> list[dict]:
        cursor = (
            self.users.find(search_filter(search, USER_SEARCH_FIELDS))
            .sort([("createdAt", DESCENDING), ("_id", DESCENDING)])
            .limit(limit)
        )
        return list(cursor)

    def insert_review(self, doc: dict) -> ObjectId:
        return self.reviews.insert_one(dict(doc)).inserted_id

    def get_review(self, review_id: ObjectId) -> Optional[dict]:
        return self.reviews.find_one({"_id": review_id})

    def list_reviews(
        self, email: Optional[str] = None, scholarship_id: Optional[str] = None
    ) -> list[dict]:
        query: dict = {}
        if email:
            query["email"] = email
        if scholarship_id:
            query["scholarshipId"] = scholarship_id
        cursor = self.reviews.find(query).sort(
            [("createdAt", DESCENDING), ("_id", DESCENDING)]
        )
        return list(cursor)

    def delete_review(self, review_id: ObjectId) -> int:
        return self.reviews.delete_one({"_id": review_id}).deleted_count

    def find_application(self, user_email: str, scholarship_id: str) -> Optional[dict]:
        return self.applications.find_one(
            {"userEmail": user_email, "scholarshipId": scholarship_id}
        )

    def insert_application(self, doc: dict) -> ObjectId:
        return self.applications.insert_one(dict(doc)).inserted_id

    def list_applications(self, user_email: Optional[str] = None) -> list[dict]:
        query = {"userEmail": user_email} if user_email else {}
        cursor = self.applications.find(query).sort(
            [("applicationDate", DESCENDING), ("_id", DESCENDING)]
        )
        return list(cursor)

    def update_application(self, application_id: ObjectId, fields: dict) -> UpdateResult:
        result = self.applications.update_one({"_id": application_id}, {"$set": fields})
        return self._to_update_result(result)

    def delete_application(self, application_id: ObjectId) -> int:
        return self.applications.delete_one({"_id": application_id}).deleted_count
