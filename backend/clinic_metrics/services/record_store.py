# record store — typed record collections read from mongodb
# range bounds are half-open local wall-clock iso strings [start, end) compared
# against the stored iso timestamps, so a record's own calendar day decides membership.
# builders depend on the RecordStore protocol, not on mongodb.

import logging
from typing import Any, Literal, Optional, Protocol

from pydantic import ValidationError as ModelValidationError
from pymongo.errors import PyMongoError

from clinic_metrics.errors import FetchError
from clinic_metrics.models.records import (
    Authorization,
    BillingEntry,
    Client,
    Record,
    Session,
    Therapist,
)
from clinic_metrics.models.reports import ClientMetrics
from clinic_metrics.services.db import Database
from clinic_metrics.services.grouping import percent_of

logger = logging.getLogger(__name__)

EntityKind = Literal["clients", "therapists", "authorizations", "billing"]


class RecordStore(Protocol):
    """async contract the report builders and dashboard consume"""

    async def get_sessions(
        self,
        start: str,
        end: str,
        therapist_id: Optional[str] = None,
        client_id: Optional[str] = None,
        status: Optional[str] = None,
    ) -> list[Session]: ...

    async def get_all(self, kind: EntityKind) -> list[Record]: ...

    async def get_authorizations(self, start: str, end: str) -> list[Authorization]: ...

    async def get_billing_records(self, start: str, end: str) -> list[BillingEntry]: ...

    async def get_metrics(self, kind: str, start: str, end: str) -> ClientMetrics: ...


def _record_id(doc: dict) -> str:
    return str(doc.get("id") or doc.get("_id", ""))


def _clean(doc: dict) -> dict:
    """drop mongo internals and normalise the id field"""
    data = {k: v for k, v in doc.items() if k != "_id"}
    data["id"] = _record_id(doc)
    return data


class MongoRecordStore:
    """RecordStore backed by the motor collections in Database"""

    _models: dict[str, type[Record]] = {
        "clients": Client,
        "therapists": Therapist,
        "authorizations": Authorization,
        "billing": BillingEntry,
    }

    def __init__(self, db: Database):
        self.db = db

    def _collection(self, kind: str):
        collections = {
            "clients": self.db.clients,
            "therapists": self.db.therapists,
            "authorizations": self.db.authorizations,
            "billing": self.db.billing_records,
        }
        if kind not in collections:
            raise ValueError(f"unknown entity kind: {kind}")
        return collections[kind]

    async def _names(self, collection, ids: set[str]) -> dict[str, str]:
        """resolve display names for a set of ids. unresolved ids are left out"""
        if not ids:
            return {}
        names = {}
        cursor = collection.find({"id": {"$in": sorted(ids)}}, {"id": 1, "full_name": 1})
        async for doc in cursor:
            if doc.get("full_name"):
                names[_record_id(doc)] = doc["full_name"]
        return names

    async def get_sessions(
        self,
        start: str,
        end: str,
        therapist_id: Optional[str] = None,
        client_id: Optional[str] = None,
        status: Optional[str] = None,
    ) -> list[Session]:
        """sessions whose start_time falls in [start, end), joined with therapist/client names"""
        query: dict[str, Any] = {"start_time": {"$gte": start, "$lt": end}}
        if therapist_id:
            query["therapist_id"] = therapist_id
        if client_id:
            query["client_id"] = client_id
        if status:
            query["status"] = status

        try:
            docs = await self.db.sessions.find(query).sort("start_time", 1).to_list(length=None)
            therapist_names = await self._names(
                self.db.therapists, {d["therapist_id"] for d in docs if d.get("therapist_id")}
            )
            client_names = await self._names(
                self.db.clients, {d["client_id"] for d in docs if d.get("client_id")}
            )
            sessions = []
            for doc in docs:
                data = _clean(doc)
                data.setdefault("therapist_name", therapist_names.get(doc.get("therapist_id")))
                data.setdefault("client_name", client_names.get(doc.get("client_id")))
                sessions.append(Session(**data))
        except PyMongoError as e:
            raise FetchError(f"sessions query failed: {e}")
        except ModelValidationError as e:
            raise FetchError(f"sessions query returned malformed records: {e.error_count()} errors")

        logger.info(f"Fetched {len(sessions)} sessions from {start} to {end}")
        return sessions

    async def get_all(self, kind: EntityKind) -> list[Record]:
        model = self._models.get(kind)
        if model is None:
            raise ValueError(f"unknown entity kind: {kind}")
        try:
            docs = await self._collection(kind).find({}).to_list(length=None)
            return [model(**_clean(doc)) for doc in docs]
        except PyMongoError as e:
            raise FetchError(f"{kind} fetch failed: {e}")
        except ModelValidationError as e:
            raise FetchError(f"{kind} fetch returned malformed records: {e.error_count()} errors")

    async def get_authorizations(self, start: str, end: str) -> list[Authorization]:
        """authorizations created in [start, end), joined with client and provider names"""
        try:
            docs = await self.db.authorizations.find(
                {"created_at": {"$gte": start, "$lt": end}}
            ).sort("created_at", 1).to_list(length=None)
            client_names = await self._names(
                self.db.clients, {d["client_id"] for d in docs if d.get("client_id")}
            )
            provider_names = await self._names(
                self.db.therapists, {d["provider_id"] for d in docs if d.get("provider_id")}
            )
            authorizations = []
            for doc in docs:
                data = _clean(doc)
                data.setdefault("client_name", client_names.get(doc.get("client_id")))
                data.setdefault("provider_name", provider_names.get(doc.get("provider_id")))
                authorizations.append(Authorization(**data))
        except PyMongoError as e:
            raise FetchError(f"authorizations query failed: {e}")
        except ModelValidationError as e:
            raise FetchError(f"authorizations query returned malformed records: {e.error_count()} errors")
        return authorizations

    async def get_billing_records(self, start: str, end: str) -> list[BillingEntry]:
        """billing records created in [start, end)"""
        try:
            docs = await self.db.billing_records.find(
                {"created_at": {"$gte": start, "$lt": end}}
            ).sort("created_at", 1).to_list(length=None)
            return [BillingEntry(**_clean(doc)) for doc in docs]
        except PyMongoError as e:
            raise FetchError(f"billing records query failed: {e}")
        except ModelValidationError as e:
            raise FetchError(f"billing records query returned malformed records: {e.error_count()} errors")

    async def get_metrics(self, kind: str, start: str, end: str) -> ClientMetrics:
        """precomputed client metrics projection over the sessions in range"""
        if kind != "clients":
            raise ValueError(f"no metrics projection for {kind}")

        pipeline = [
            {"$match": {"start_time": {"$gte": start, "$lt": end}}},
            {"$group": {
                "_id": None,
                "total_sessions": {"$sum": 1},
                "completed_sessions": {"$sum": {"$cond": [{"$eq": ["$status", "completed"]}, 1, 0]}},
                "cancelled_sessions": {"$sum": {"$cond": [{"$eq": ["$status", "cancelled"]}, 1, 0]}},
                "no_show_sessions": {"$sum": {"$cond": [{"$eq": ["$status", "no-show"]}, 1, 0]}},
                "client_ids": {"$addToSet": "$client_id"},
            }},
        ]
        try:
            rows = await self.db.sessions.aggregate(pipeline).to_list(length=1)
            total_clients = await self.db.clients.count_documents({})
        except PyMongoError as e:
            raise FetchError(f"client metrics projection failed: {e}")

        row = rows[0] if rows else {}
        total_sessions = row.get("total_sessions", 0)
        completed = row.get("completed_sessions", 0)
        active = len([cid for cid in row.get("client_ids", []) if cid])
        return ClientMetrics(
            totalClients=total_clients,
            activeClients=active,
            inactiveClients=max(total_clients - active, 0),
            activityRate=round(percent_of(active, total_clients), 2),
            totalSessions=total_sessions,
            completedSessions=completed,
            cancelledSessions=row.get("cancelled_sessions", 0),
            noShowSessions=row.get("no_show_sessions", 0),
            completionRate=round(percent_of(completed, total_sessions), 2),
        )
