"""
Integration tests for the Database service.

Tests cover:
- Collection lifecycle and name validation
- Document CRUD through the write path
- Shaped queries with parameters and filters
- Schema inspection
- Construction from configuration
"""

import pytest

from shapeshifter.config import (
    DeciderBackend,
    DeciderConfig,
    ServerConfig,
    StoreBackend,
    StoreConfig,
)
from shapeshifter.database import Database
from shapeshifter.decider import ScriptedDecider
from shapeshifter.errors import CollectionExistsError, NotFoundError, ValidationError
from shapeshifter.reconcile import (
    MapDecision,
    ReconciliationEngine,
    RejectDecision,
    SubsetDecision,
    SupersetDecision,
)
from shapeshifter.schema import SchemaRelationChecker
from shapeshifter.store import InMemoryDocumentStore


@pytest.fixture
def decider():
    return ScriptedDecider()


@pytest.fixture
def db(decider):
    engine = ReconciliationEngine(
        decider=decider,
        checker=SchemaRelationChecker(sample_count=25, seed=7),
    )
    return Database(InMemoryDocumentStore(), engine)


ALBUMS = [
    {"_id": "1", "title": "Abbey Road", "year": 1969},
    {"_id": "2", "title": "Let It Be", "year": 1970},
    {"_id": "3", "title": "Get Back", "year": 1970},
]


async def _albums(db):
    await db.create_collection("albums")
    await db.add_documents("albums", ALBUMS)


class TestCollections:
    """Tests for collection lifecycle."""

    @pytest.mark.asyncio
    async def test_create_and_list(self, db):
        """Created collections are listed with their documents."""
        await db.create_collection("albums")
        await db.create_collection("artists")

        collections = await db.get_all_collections()

        assert [c.name for c in collections] == ["albums", "artists"]
        assert collections[0].to_dict() == {"name": "albums", "documents": []}

    @pytest.mark.asyncio
    async def test_duplicate_name(self, db):
        """Collection names are unique."""
        await db.create_collection("albums")
        with pytest.raises(CollectionExistsError):
            await db.create_collection("albums")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name", ["", "   ", "a/b"])
    async def test_invalid_name(self, db, name):
        """Empty names and names with '/' are rejected."""
        with pytest.raises(ValidationError):
            await db.create_collection(name)

    @pytest.mark.asyncio
    async def test_delete(self, db):
        """Deleted collections are gone; deleting twice fails."""
        await db.create_collection("albums")
        await db.delete_collection("albums")

        with pytest.raises(NotFoundError):
            await db.get_collection("albums")
        with pytest.raises(NotFoundError):
            await db.delete_collection("albums")

    @pytest.mark.asyncio
    async def test_schema(self, db):
        """The schema is inferred from current documents."""
        await _albums(db)

        schema = await db.get_collection_schema("albums")

        assert schema["title"] == "albums"
        assert set(schema["properties"]) == {"title", "year"}
        assert "_id" not in schema["properties"]

    @pytest.mark.asyncio
    async def test_schema_yaml(self, db):
        """The schema can be rendered as YAML text."""
        await _albums(db)

        rendered = await db.get_collection_schema("albums", "yaml")

        assert isinstance(rendered, str)
        assert "year:" in rendered

    @pytest.mark.asyncio
    async def test_schema_unknown_language(self, db):
        """Unsupported rendering targets are validation errors."""
        await _albums(db)
        with pytest.raises(ValidationError):
            await db.get_collection_schema("albums", "typescript")


class TestDocuments:
    """Tests for document writes and reads."""

    @pytest.mark.asyncio
    async def test_add_assigns_id(self, db):
        """Documents without _id get a generated one."""
        await db.create_collection("albums")

        result = await db.add_document("albums", {"title": "Abbey Road"})

        assert len(result.document["_id"]) == 36
        assert result.decision is None
        assert await db.get_document("albums", result.document["_id"]) == result.document

    @pytest.mark.asyncio
    async def test_caller_id_is_stringified(self, db):
        """Caller-supplied ids are kept as strings."""
        await db.create_collection("albums")

        result = await db.add_document("albums", {"_id": 7, "title": "Abbey Road"})

        assert result.document["_id"] == "7"

    @pytest.mark.asyncio
    async def test_add_to_missing_collection(self, db):
        """Writes never create collections implicitly."""
        with pytest.raises(NotFoundError):
            await db.add_document("albums", {"title": "Abbey Road"})

    @pytest.mark.asyncio
    async def test_non_object_document(self, db):
        """Documents must be JSON objects."""
        await db.create_collection("albums")
        with pytest.raises(ValidationError):
            await db.add_documents("albums", ["Abbey Road"])

    @pytest.mark.asyncio
    async def test_add_superset_document(self, db):
        """A document with an extra field is accepted as isSuperset."""
        await _albums(db)

        result = await db.add_document(
            "albums", {"title": "Help!", "year": 1965, "label": "Parlophone"}
        )

        assert result.decision == SupersetDecision()

    @pytest.mark.asyncio
    async def test_rejected_add(self, db, decider):
        """A rejected write returns no document and stores nothing."""
        await _albums(db)
        decider.script_documents(RejectDecision(message="not an album"))

        result = await db.add_document("albums", {"price": 9.99})

        assert result.document is None
        assert isinstance(result.decision, RejectDecision)
        assert len((await db.get_collection("albums")).documents) == 3

    @pytest.mark.asyncio
    async def test_update_keeps_shape(self, db):
        """A patch that keeps every field needs no Decision."""
        await _albums(db)

        result = await db.update_document("albums", "1", {"title": "Abbey Road (Remastered)"})

        assert result.decision is None
        assert result.document == {"_id": "1", "title": "Abbey Road (Remastered)", "year": 1969}
        assert (await db.get_document("albums", "1"))["title"] == "Abbey Road (Remastered)"

    @pytest.mark.asyncio
    async def test_update_missing_document(self, db):
        """Updating an unknown document fails."""
        await _albums(db)
        with pytest.raises(NotFoundError):
            await db.update_document("albums", "99", {"title": "x"})

    @pytest.mark.asyncio
    async def test_replace_with_fewer_fields(self, db):
        """Replacing with a narrower body is reconciled as isSubset."""
        await _albums(db)

        result = await db.replace_document("albums", "1", {"title": "Abbey Road"})

        assert result.decision == SubsetDecision()
        assert await db.get_document("albums", "1") == {"_id": "1", "title": "Abbey Road"}

    @pytest.mark.asyncio
    async def test_replace_ignores_body_id(self, db):
        """The path id wins over an _id in the body."""
        await _albums(db)

        await db.replace_document("albums", "1", {"_id": "other", "title": "A", "year": 1})

        assert (await db.get_document("albums", "1"))["title"] == "A"
        with pytest.raises(NotFoundError):
            await db.get_document("albums", "other")

    @pytest.mark.asyncio
    async def test_delete_documents(self, db):
        """Single and batch deletes remove documents."""
        await _albums(db)

        await db.delete_document("albums", "1")
        await db.delete_documents("albums", ["2", "missing"])

        remaining = (await db.get_collection("albums")).documents
        assert [d["_id"] for d in remaining] == ["3"]


class TestQueries:
    """Tests for query_documents."""

    @pytest.mark.asyncio
    async def test_parameters(self, db):
        """Equality, sort and limit apply in order."""
        await _albums(db)

        result = await db.query_documents("albums", {"year": "1970", "sort": "desc", "limit": "1"})

        assert [d["_id"] for d in result.documents] == ["3"]
        assert result.decision is None

    @pytest.mark.asyncio
    async def test_shape_and_filter(self, db):
        """Shapes project; filters run on the projected documents."""
        await _albums(db)

        result = await db.query_documents(
            "albums", shape={"year": 0}, filter={"year": {"$gte": 1970}}
        )

        assert result.documents == [{"year": 1970, "_id": "2"}, {"year": 1970, "_id": "3"}]

    @pytest.mark.asyncio
    async def test_mapped_shape(self, db, decider):
        """Shapes outside the schema go through the oracle."""
        await _albums(db)
        decider.script_queries(MapDecision(program="{name: .title}"))

        result = await db.query_documents("albums", {"limit": "1"}, shape={"name": ""})

        assert result.documents == [{"name": "Abbey Road", "_id": "1"}]
        assert isinstance(result.decision, MapDecision)

    @pytest.mark.asyncio
    async def test_rejected_shape(self, db, decider):
        """A rejected shape returns no documents."""
        await _albums(db)
        decider.script_queries(RejectDecision(message="unrelated"))

        result = await db.query_documents("albums", shape={"price": 0})

        assert result.documents == []
        assert isinstance(result.decision, RejectDecision)

    @pytest.mark.asyncio
    async def test_invalid_filter_skips_oracle(self, db, decider):
        """Malformed filters fail before the oracle is consulted."""
        await _albums(db)

        with pytest.raises(ValidationError):
            await db.query_documents("albums", shape={"price": 0}, filter={"$where": "1"})

        assert decider.calls == []

    @pytest.mark.asyncio
    async def test_invalid_parameters(self, db):
        """Malformed limit is a validation error."""
        await _albums(db)
        with pytest.raises(ValidationError):
            await db.query_documents("albums", {"limit": "many"})


class TestFromConfig:
    """Tests for Database.from_config."""

    @pytest.mark.asyncio
    async def test_memory_store_with_reject_decider(self):
        """Divergent writes are rejected when no oracle is configured."""
        config = ServerConfig(
            store=StoreConfig(backend=StoreBackend.MEMORY),
            decider=DeciderConfig(backend=DeciderBackend.REJECT),
        )
        db = await Database.from_config(config)

        await db.create_collection("albums")
        await db.add_document("albums", {"title": "Abbey Road"})
        result = await db.add_document("albums", {"price": 9.99})

        assert isinstance(result.decision, RejectDecision)
        await db.close()

    @pytest.mark.asyncio
    async def test_sqlite_store(self, tmp_path):
        """The SQLite store is initialized on construction."""
        config = ServerConfig(
            store=StoreConfig(backend=StoreBackend.SQLITE, data_dir=str(tmp_path), wal_mode=False),
            decider=DeciderConfig(backend=DeciderBackend.REJECT),
        )
        db = await Database.from_config(config)

        await db.create_collection("albums")
        await db.add_document("albums", {"_id": "1", "title": "Abbey Road"})

        assert await db.get_document("albums", "1") == {"_id": "1", "title": "Abbey Road"}
        await db.close()

    @pytest.mark.asyncio
    async def test_close_closes_decider(self, db, decider):
        """close() releases the decider."""
        await db.close()
        assert decider.closed
