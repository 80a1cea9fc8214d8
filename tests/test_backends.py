"""
Backend tests: MongoDB error translation (against a fake async client) and
the in-memory store.
"""

import pytest
from pymongo.errors import (
    CollectionInvalid,
    OperationFailure,
    ServerSelectionTimeoutError,
)

from scopedstore import (
    CollectionExistsError,
    ConnectionFailureError,
    ConnectionManager,
    InMemoryStoreBackend,
    MongoStoreBackend,
)
from scopedstore import backends
from scopedstore.backends import backend_for_uri, is_namespace_exists

from conftest import run


# ---------------------------------------------------------------------------
# Fake pymongo async client
# ---------------------------------------------------------------------------

class FakeAdmin:
    def __init__(self, error=None):
        self.error = error
        self.commands = []

    async def command(self, name):
        self.commands.append(name)
        if self.error is not None:
            raise self.error
        return {"ok": 1.0}


class FakeDatabase:
    def __init__(self, client, name):
        self.client = client
        self.name = name
        self.created = {}

    def get_collection(self, name):
        return ("collection", self.name, name)

    async def create_collection(self, name, check_exists=True, **kwargs):
        if self.client.create_error is not None:
            raise self.client.create_error
        if name in self.created:
            raise OperationFailure(
                f"Collection {self.name}.{name} already exists.",
                code=48,
                details={"ok": 0, "code": 48, "codeName": "NamespaceExists"},
            )
        self.created[name] = kwargs
        return ("collection", self.name, name)


class FakeAsyncMongoClient:
    ping_error = None
    create_error = None
    instances = []

    def __init__(self, uri, **kwargs):
        self.uri = uri
        self.kwargs = kwargs
        self.admin = FakeAdmin(self.ping_error)
        self.databases = {}
        self.dropped = []
        self.closed = False
        FakeAsyncMongoClient.instances.append(self)

    def get_database(self, name):
        if name not in self.databases:
            self.databases[name] = FakeDatabase(self, name)
        return self.databases[name]

    async def drop_database(self, name):
        self.dropped.append(name)

    async def close(self):
        self.closed = True


@pytest.fixture
def fake_client(monkeypatch):
    FakeAsyncMongoClient.ping_error = None
    FakeAsyncMongoClient.create_error = None
    FakeAsyncMongoClient.instances = []
    monkeypatch.setattr(backends, "AsyncMongoClient", FakeAsyncMongoClient)
    return FakeAsyncMongoClient


MONGO_URI = "mongodb://db.example:27017"


# ---------------------------------------------------------------------------
# MongoStoreBackend
# ---------------------------------------------------------------------------

def test_mongo_connect_pings_server(fake_client):
    backend = MongoStoreBackend(serverSelectionTimeoutMS=500)
    run(backend.connect(MONGO_URI))
    client = fake_client.instances[0]
    assert client.uri == MONGO_URI
    assert client.kwargs == {"serverSelectionTimeoutMS": 500}
    assert client.admin.commands == ["ping"]
    assert backend.client is client


def test_mongo_connect_failure(fake_client):
    fake_client.ping_error = ServerSelectionTimeoutError("no servers found")
    backend = MongoStoreBackend()
    with pytest.raises(ConnectionFailureError) as exc:
        run(backend.connect(MONGO_URI))
    assert exc.value.uri == MONGO_URI
    assert isinstance(exc.value.__cause__, ServerSelectionTimeoutError)
    assert fake_client.instances[0].closed
    assert backend.client is None


def test_mongo_collection_is_prefixed_through_manager(fake_client):
    manager = ConnectionManager()
    root = run(manager.initialize(MONGO_URI, backend=MongoStoreBackend()))
    child = root.get_data_store("A")
    assert run(child.get_collection("items")) == ("collection", "DataStore", "global.A.items")


def test_mongo_custom_db_name(fake_client):
    manager = ConnectionManager()
    root = run(manager.initialize(MONGO_URI, db_name="custom", backend=MongoStoreBackend()))
    assert run(root.get_collection("validation"))[1] == "custom"


def test_mongo_create_collection_conflict(fake_client):
    manager = ConnectionManager()
    root = run(manager.initialize(MONGO_URI, backend=MongoStoreBackend()))
    run(root.create_collection("createCollection", {"capped": True, "size": 1024}))
    database = fake_client.instances[0].databases["DataStore"]
    assert database.created["global.createCollection"] == {"capped": True, "size": 1024}

    with pytest.raises(CollectionExistsError) as exc:
        run(root.create_collection("createCollection"))
    assert exc.value.name == "global.createCollection"
    assert isinstance(exc.value.__cause__, OperationFailure)


def test_mongo_collection_invalid_maps_to_exists(fake_client):
    fake_client.create_error = CollectionInvalid("collection global.x already exists")
    backend = MongoStoreBackend()
    run(backend.connect(MONGO_URI))
    database = backend.database("DataStore")
    with pytest.raises(CollectionExistsError):
        run(backend.create_collection(database, "global.x"))


def test_mongo_other_operation_failures_propagate(fake_client):
    fake_client.create_error = OperationFailure("not authorized", code=13)
    backend = MongoStoreBackend()
    run(backend.connect(MONGO_URI))
    with pytest.raises(OperationFailure):
        run(backend.create_collection(backend.database("DataStore"), "global.x"))


def test_mongo_discard_drops_and_closes(fake_client):
    manager = ConnectionManager()
    root = run(manager.initialize(MONGO_URI, db_name="scratch", backend=MongoStoreBackend()))
    run(root.discard(drop_db=True))
    client = fake_client.instances[0]
    assert client.dropped == ["scratch"]
    assert client.closed


def test_is_namespace_exists():
    assert is_namespace_exists(OperationFailure("exists", code=48))
    assert is_namespace_exists(OperationFailure("exists", details={"codeName": "NamespaceExists"}))
    assert not is_namespace_exists(OperationFailure("denied", code=13))


def test_backend_for_uri():
    assert isinstance(backend_for_uri("memory://x"), InMemoryStoreBackend)
    assert isinstance(backend_for_uri(MONGO_URI), MongoStoreBackend)


# ---------------------------------------------------------------------------
# InMemoryStoreBackend
# ---------------------------------------------------------------------------

def test_memory_rejects_foreign_uri():
    with pytest.raises(ConnectionFailureError):
        run(InMemoryStoreBackend().connect(MONGO_URI))


def test_memory_collection_documents():
    backend = InMemoryStoreBackend()
    run(backend.connect("memory://docs"))
    database = backend.database("db")
    collection = run(backend.collection(database, "global.items"))
    collection.insert_one({"kind": "a", "n": 1})
    collection.insert_one({"kind": "b", "n": 2})
    collection.insert_one({"kind": "a", "n": 3})

    assert collection.count_documents() == 3
    assert collection.count_documents({"kind": "a"}) == 2
    assert collection.find_one({"n": 2})["kind"] == "b"
    assert collection.find_one({"n": 99}) is None
    assert collection.full_name == "db.global.items"
    assert database.list_collection_names() == ["global.items"]


def test_memory_find_returns_copies():
    backend = InMemoryStoreBackend()
    run(backend.connect("memory://copies"))
    collection = run(backend.collection(backend.database("db"), "c"))
    collection.insert_one({"v": 1})
    doc = collection.find_one()
    doc["v"] = 2
    assert collection.find_one()["v"] == 1


def test_memory_drop_collection_allows_recreate():
    backend = InMemoryStoreBackend()
    run(backend.connect("memory://drop"))
    database = backend.database("db")
    collection = run(backend.create_collection(database, "c"))
    collection.drop()
    assert database.list_collection_names() == []
    run(backend.create_collection(database, "c"))


def test_mongo_connect_closes_client_on_auth_failure(fake_client):
    fake_client.ping_error = OperationFailure("Authentication failed.", code=18)
    backend = MongoStoreBackend()
    with pytest.raises(OperationFailure):
        run(backend.connect(MONGO_URI))
    assert fake_client.instances[0].closed
    assert backend.client is None


def test_memory_handle_survives_drop_database():
    backend = InMemoryStoreBackend()
    run(backend.connect("memory://survive"))
    database = backend.database("db")
    stale = run(backend.collection(database, "global.items"))
    stale.insert_one({"v": 1})

    run(backend.drop_database(database))
    assert "db" not in backend.databases
    assert stale.count_documents() == 0

    stale.insert_one({"v": 2})
    assert "db" in backend.databases
    fresh = run(backend.collection(backend.database("db"), "global.items"))
    assert [d["v"] for d in fresh.find()] == [2]


def test_memory_handles_for_same_name_share_documents():
    backend = InMemoryStoreBackend()
    run(backend.connect("memory://shared"))
    database = backend.database("db")
    first = run(backend.collection(database, "c"))
    first.drop()
    second = run(backend.collection(database, "c"))
    first.insert_one({"v": 1})
    assert second.count_documents() == 1
