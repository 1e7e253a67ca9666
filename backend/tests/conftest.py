# shared fixtures for reporting engine tests
# provides mock motor db, an in-memory fake record store, sample records and httpx test clients

import pytest
import pytest_asyncio
from datetime import datetime

from httpx import AsyncClient, ASGITransport

from clinic_metrics.errors import FetchError
from clinic_metrics.main import app
from clinic_metrics.models.records import Authorization, BillingEntry, Client, Session, Therapist
from clinic_metrics.services.db import get_db
from clinic_metrics.dependencies import get_record_store


# record factories


def make_session(
    session_id: str,
    start_time: str,
    status: str = "completed",
    therapist_id: str = "t1",
    client_id: str = "c1",
    therapist_name: str = "Dr. Maya Ortiz",
    client_name: str = "Alex Rivera",
) -> Session:
    return Session(
        id=session_id,
        start_time=start_time,
        status=status,
        therapist_id=therapist_id,
        client_id=client_id,
        therapist_name=therapist_name,
        client_name=client_name,
    )


def make_authorization(
    auth_id: str,
    status: str = "active",
    created_at: str = "2025-06-05T09:00:00-07:00",
    end_date: str = "2025-12-31",
    provider_name: str = "Dr. Maya Ortiz",
    client_name: str = "Alex Rivera",
) -> Authorization:
    return Authorization(
        id=auth_id,
        client_id="c1",
        provider_id="t1",
        status=status,
        start_date="2025-06-01",
        end_date=end_date,
        created_at=created_at,
        client_name=client_name,
        provider_name=provider_name,
    )


def make_billing(record_id: str, amount: float, status: str = "paid",
                 created_at: str = "2025-06-10T12:00:00-07:00") -> BillingEntry:
    return BillingEntry(id=record_id, session_id=f"s-{record_id}", client_id="c1",
                        amount=amount, status=status, created_at=created_at)


THERAPISTS = [
    Therapist(id="t1", full_name="Dr. Maya Ortiz", specialties=["autism", "feeding"], service_type=["in_clinic"]),
    Therapist(id="t2", full_name="Dr. Sam Lee", specialties=["autism"], service_type=["in_home", "telehealth"]),
    Therapist(id="t3", full_name="Jordan Kim", specialties=[], service_type=["in_clinic"]),
]

CLIENTS = [
    Client(id="c1", full_name="Alex Rivera", gender="female", service_preference=["in_clinic"]),
    Client(id="c2", full_name="Riley Nguyen", gender="male", service_preference=["in_home"]),
]


def _local_wall_clock(value: datetime) -> str:
    return value.replace(tzinfo=None).isoformat()


class FakeRecordStore:
    """in-memory RecordStore that records every call and can fail chosen methods"""

    def __init__(self, sessions=None, clients=None, therapists=None,
                 authorizations=None, billing_records=None, metrics=None, fail_on=()):
        self.sessions = list(sessions or [])
        self.clients = list(clients or [])
        self.therapists = list(therapists or [])
        self.authorizations = list(authorizations or [])
        self.billing_records = list(billing_records or [])
        self.metrics = metrics
        self.fail_on = set(fail_on)
        self.calls = []

    def _check(self, name):
        self.calls.append(name)
        if name in self.fail_on:
            raise FetchError(f"{name} failed: backend unavailable")

    async def get_sessions(self, start, end, therapist_id=None, client_id=None, status=None):
        self._check("get_sessions")
        result = []
        for s in self.sessions:
            local = _local_wall_clock(s.start_time)
            if not (start <= local < end):
                continue
            if therapist_id and s.therapist_id != therapist_id:
                continue
            if client_id and s.client_id != client_id:
                continue
            if status and s.status != status:
                continue
            result.append(s)
        return sorted(result, key=lambda s: _local_wall_clock(s.start_time))

    async def get_all(self, kind):
        self._check(f"get_all:{kind}")
        return {
            "clients": self.clients,
            "therapists": self.therapists,
            "authorizations": self.authorizations,
            "billing": self.billing_records,
        }[kind]

    async def get_authorizations(self, start, end):
        self._check("get_authorizations")
        return [a for a in self.authorizations if start <= _local_wall_clock(a.created_at) < end]

    async def get_billing_records(self, start, end):
        self._check("get_billing_records")
        return [b for b in self.billing_records if start <= _local_wall_clock(b.created_at) < end]

    async def get_metrics(self, kind, start, end):
        self._check(f"get_metrics:{kind}")
        return self.metrics


@pytest.fixture
def june_sessions():
    """ten june 2025 sessions: 6 completed, 2 cancelled, 1 no-show, 1 scheduled"""
    return [
        make_session("s1", "2025-06-02T09:00:00-07:00"),                      # monday
        make_session("s2", "2025-06-02T11:00:00-07:00", therapist_id="t2",
                     therapist_name="Dr. Sam Lee", client_id="c2", client_name="Riley Nguyen"),
        make_session("s3", "2025-06-03T10:00:00-07:00", status="cancelled"),  # tuesday
        make_session("s4", "2025-06-04T10:00:00-07:00"),                      # wednesday
        make_session("s5", "2025-06-05T10:00:00-07:00", status="no-show",
                     therapist_id="t2", therapist_name="Dr. Sam Lee"),
        make_session("s6", "2025-06-06T10:00:00-07:00"),                      # friday
        make_session("s7", "2025-06-07T10:00:00-07:00", status="cancelled",
                     client_id="c9", client_name=None),                        # saturday
        make_session("s8", "2025-06-09T10:00:00-07:00", therapist_id="t2",
                     therapist_name="Dr. Sam Lee"),
        make_session("s9", "2025-06-16T10:00:00-07:00"),
        make_session("s10", "2025-06-30T23:30:00-07:00", status="scheduled"),
    ]


@pytest.fixture
def fake_store(june_sessions):
    return FakeRecordStore(sessions=june_sessions, clients=CLIENTS, therapists=THERAPISTS)


# mongo documents (as they'd appear from motor)

SESSION_DOCS = [
    {"_id": "oid-s1", "id": "s1", "therapist_id": "t1", "client_id": "c1",
     "start_time": "2025-06-02T09:00:00-07:00", "status": "completed", "location_type": "in_clinic"},
    {"_id": "oid-s2", "id": "s2", "therapist_id": "t2", "client_id": "c2",
     "start_time": "2025-06-30T23:30:00-07:00", "status": "scheduled"},
    {"_id": "oid-s3", "id": "s3", "therapist_id": "t404", "client_id": "c1",
     "start_time": "2025-06-10T10:00:00-07:00", "status": "cancelled"},
    {"_id": "oid-s4", "id": "s4", "therapist_id": "t1", "client_id": "c1",
     "start_time": "2025-07-01T00:15:00-07:00", "status": "completed"},
    {"_id": "oid-s5", "id": "s5", "therapist_id": "t1", "client_id": "c2",
     "start_time": "2025-05-31T23:45:00-07:00", "status": "completed"},
]

CLIENT_DOCS = [
    {"_id": "oid-c1", "id": "c1", "full_name": "Alex Rivera", "gender": "female"},
    {"_id": "oid-c2", "id": "c2", "full_name": "Riley Nguyen"},
]

THERAPIST_DOCS = [
    {"_id": "oid-t1", "id": "t1", "full_name": "Dr. Maya Ortiz", "specialties": ["autism"]},
    {"_id": "oid-t2", "id": "t2", "full_name": "Dr. Sam Lee"},
]

AUTHORIZATION_DOCS = [
    {"_id": "oid-a1", "id": "a1", "client_id": "c1", "provider_id": "t1", "status": "active",
     "start_date": "2025-06-01", "end_date": "2025-07-15", "created_at": "2025-06-03T08:00:00-07:00"},
    {"_id": "oid-a2", "id": "a2", "client_id": "c2", "provider_id": "t404", "status": "pending",
     "start_date": "2025-05-01", "end_date": "2025-11-30", "created_at": "2025-05-20T08:00:00-07:00"},
]

BILLING_DOCS = [
    {"_id": "oid-b1", "id": "b1", "session_id": "s1", "client_id": "c1", "amount": 150.0,
     "status": "paid", "created_at": "2025-06-02T12:00:00-07:00"},
    {"_id": "oid-b2", "id": "b2", "session_id": "s4", "client_id": "c1", "amount": 150.0,
     "status": "pending", "created_at": "2025-07-01T12:00:00-07:00"},
]


# async cursor mock

class AsyncCursorMock:
    """mock for motor's async cursor — supports async for and chained methods"""

    def __init__(self, data=None):
        self._data = data or []
        self._index = 0

    def sort(self, key, direction=1):
        self._data = sorted(self._data, key=lambda d: d.get(key) or "", reverse=direction == -1)
        return self

    def limit(self, n):
        self._data = self._data[:n]
        return self

    def __aiter__(self):
        self._index = 0
        return self

    async def __anext__(self):
        if self._index >= len(self._data):
            raise StopAsyncIteration
        item = self._data[self._index]
        self._index += 1
        return item

    async def to_list(self, length=None):
        if length is not None:
            return self._data[:length]
        return list(self._data)


class MockCollection:
    """mock for a motor collection with async methods"""

    def __init__(self, data=None, aggregate_result=None):
        self._data = data or []
        self.aggregate_result = aggregate_result or []
        self.pipelines = []
        self.indexes = []
        self.error = None

    def _raise_if_broken(self):
        if self.error is not None:
            raise self.error

    def find(self, query=None, projection=None):
        self._raise_if_broken()
        results = self._data
        if query:
            results = [d for d in results if self._matches(d, query)]
        return AsyncCursorMock(results)

    async def count_documents(self, query=None):
        self._raise_if_broken()
        if not query:
            return len(self._data)
        return len([d for d in self._data if self._matches(d, query)])

    def aggregate(self, pipeline):
        self._raise_if_broken()
        self.pipelines.append(pipeline)
        return AsyncCursorMock(list(self.aggregate_result))

    async def create_indexes(self, indexes):
        self.indexes.extend(indexes)
        return [index.document["name"] for index in indexes]

    def _matches(self, doc, query):
        """basic mongodb query matching for tests"""
        for key, value in query.items():
            doc_val = doc.get(key)
            if isinstance(value, dict):
                for op, operand in value.items():
                    if op == "$in" and doc_val not in operand:
                        return False
                    if op == "$gte" and (doc_val is None or doc_val < operand):
                        return False
                    if op == "$lt" and (doc_val is None or doc_val >= operand):
                        return False
                    if op == "$lte" and (doc_val is None or doc_val > operand):
                        return False
            elif doc_val != value:
                return False
        return True


class MockDatabase:
    """mock database that mimics the Database class"""

    def __init__(self):
        self.sessions = MockCollection([dict(d) for d in SESSION_DOCS])
        self.clients = MockCollection([dict(d) for d in CLIENT_DOCS])
        self.therapists = MockCollection([dict(d) for d in THERAPIST_DOCS])
        self.authorizations = MockCollection([dict(d) for d in AUTHORIZATION_DOCS])
        self.billing_records = MockCollection([dict(d) for d in BILLING_DOCS])

    async def connect(self):
        pass

    async def close(self):
        pass


@pytest.fixture
def mock_db():
    """create a fresh mock database for each test"""
    return MockDatabase()


@pytest_asyncio.fixture
async def client(mock_db):
    """httpx async test client backed by the mock database"""

    async def override_get_db():
        return mock_db

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def fake_client(fake_store):
    """httpx async test client whose record store is the in-memory fake"""

    async def override_get_record_store():
        return fake_store

    app.dependency_overrides[get_record_store] = override_get_record_store

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# structured note that passes every compliance rule

COMPLETE_NOTE = {
    "clinical_status": "Client engaged for the full session",
    "observations": [{
        "behavior_type": "elopement",
        "description": "left the work area",
        "frequency": 3,
        "antecedent": "demand presented",
        "consequence": "redirected to table",
    }],
    "data_summary": [{"program_name": "manding", "trials_presented": 20, "correct_responses": 16}],
    "interventions": [{"type": "DTT", "aba_technique": "prompt fading"}],
    "progress": [{"goal_id": "g1", "current_performance": 80, "previous_performance": 65}],
}
