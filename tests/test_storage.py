import sqlite3

import pytest

from promptlib.engine import VariableDefinition
from promptlib.errors import ErrorCode, PromptlibError
from promptlib.models import SCHEMA_VERSION, Prompt
from promptlib.storage import Storage


@pytest.fixture
def storage(tmp_path):
    db_path = tmp_path / "test.db"
    return Storage(db_path=db_path)


@pytest.fixture
def sample_prompt():
    return Prompt(
        name="test-prompt",
        content="Hello {{name}}, welcome to {{place}}",
        category="greeting",
        variables=[
            VariableDefinition(name="name", description="Who to greet"),
            VariableDefinition(name="place", default_value="Earth"),
        ],
    )


class TestSaveAndGet:
    def test_save_and_get(self, storage, sample_prompt):
        storage.save_prompt(sample_prompt)
        result = storage.get_prompt("test-prompt")
        assert result.name == "test-prompt"
        assert result.content == "Hello {{name}}, welcome to {{place}}"
        assert result.category == "greeting"
        assert result.variables == sample_prompt.variables
        assert result.copy_count == 0

    def test_variables_stored_as_json(self, storage, sample_prompt):
        storage.save_prompt(sample_prompt)
        row = storage._conn.execute(
            "SELECT variables FROM prompts WHERE name = 'test-prompt'"
        ).fetchone()
        assert '"defaultValue": "Earth"' in row["variables"]

    def test_save_duplicate_raises(self, storage, sample_prompt):
        storage.save_prompt(sample_prompt)
        with pytest.raises(PromptlibError) as exc_info:
            storage.save_prompt(sample_prompt)
        assert exc_info.value.code == ErrorCode.PROMPT_ALREADY_EXISTS

    def test_get_nonexistent_raises(self, storage):
        with pytest.raises(PromptlibError) as exc_info:
            storage.get_prompt("nonexistent")
        assert exc_info.value.code == ErrorCode.PROMPT_NOT_FOUND


class TestUpdate:
    def test_content_change_resyncs_variables(self, storage, sample_prompt):
        storage.save_prompt(sample_prompt)
        result = storage.update_prompt("test-prompt", content="Bye {{place}} and {{time}}")
        assert result.variables == [
            VariableDefinition(name="place", default_value="Earth"),
            VariableDefinition(name="time"),
        ]
        assert storage.get_prompt("test-prompt").variables == result.variables

    def test_variables_synced_against_content(self, storage, sample_prompt):
        storage.save_prompt(sample_prompt)
        result = storage.update_prompt(
            "test-prompt",
            variables=[
                VariableDefinition(name="place", description="Where"),
                VariableDefinition(name="bogus", default_value="x"),
            ],
        )
        assert result.variables == [
            VariableDefinition(name="name"),
            VariableDefinition(name="place", description="Where"),
        ]

    def test_other_fields(self, storage, sample_prompt):
        storage.save_prompt(sample_prompt)
        result = storage.update_prompt(
            "test-prompt", description="A greeting", category="email"
        )
        assert result.description == "A greeting"
        assert result.category == "email"
        assert result.content == sample_prompt.content

    def test_update_nonexistent_raises(self, storage):
        with pytest.raises(PromptlibError) as exc_info:
            storage.update_prompt("nonexistent", content="x")
        assert exc_info.value.code == ErrorCode.PROMPT_NOT_FOUND


class TestDelete:
    def test_delete(self, storage, sample_prompt):
        storage.save_prompt(sample_prompt)
        deleted = storage.delete_prompt("test-prompt")
        assert deleted.name == "test-prompt"
        with pytest.raises(PromptlibError) as exc_info:
            storage.get_prompt("test-prompt")
        assert exc_info.value.code == ErrorCode.PROMPT_NOT_FOUND

    def test_delete_nonexistent_raises(self, storage):
        with pytest.raises(PromptlibError) as exc_info:
            storage.delete_prompt("nonexistent")
        assert exc_info.value.code == ErrorCode.PROMPT_NOT_FOUND


class TestList:
    def test_list_empty(self, storage):
        assert storage.list_prompts() == []

    def test_list_all(self, storage):
        storage.save_prompt(Prompt(name="alpha", content="a"))
        storage.save_prompt(Prompt(name="beta", content="b"))
        result = storage.list_prompts()
        assert [p.name for p in result] == ["alpha", "beta"]

    def test_list_by_category(self, storage):
        storage.save_prompt(Prompt(name="a", content="x", category="cat1"))
        storage.save_prompt(Prompt(name="b", content="y", category="cat2"))
        result = storage.list_prompts(category="cat1")
        assert len(result) == 1
        assert result[0].name == "a"


class TestRecent:
    def test_recent_order(self, storage):
        storage.save_prompt(Prompt(name="old", content="old"))
        storage.save_prompt(Prompt(name="new", content="new"))
        result = storage.recent_prompts(limit=10)
        assert result[0].name == "new"

    def test_recent_limit(self, storage):
        for i in range(5):
            storage.save_prompt(Prompt(name=f"p{i}", content=f"content {i}"))
        result = storage.recent_prompts(limit=2)
        assert len(result) == 2


class TestRecordCopy:
    def test_record_copy_increments(self, storage, sample_prompt):
        storage.save_prompt(sample_prompt)
        result = storage.record_copy("test-prompt")
        assert result.copy_count == 1
        result = storage.record_copy("test-prompt")
        assert result.copy_count == 2

    def test_record_copy_updates_timestamp(self, storage, sample_prompt):
        storage.save_prompt(sample_prompt)
        original = storage.get_prompt("test-prompt")
        result = storage.record_copy("test-prompt")
        assert result.updated_at >= original.updated_at

    def test_record_copy_nonexistent_raises(self, storage):
        with pytest.raises(PromptlibError) as exc_info:
            storage.record_copy("nonexistent")
        assert exc_info.value.code == ErrorCode.PROMPT_NOT_FOUND


class TestSchemaVersion:
    def test_schema_version_stored(self, tmp_path):
        s = Storage(db_path=tmp_path / "test.db")
        row = s._conn.execute(
            "SELECT value FROM meta WHERE key = 'schema_version'"
        ).fetchone()
        assert row["value"] == str(SCHEMA_VERSION)

    def test_schema_version_mismatch(self, tmp_path):
        db_path = tmp_path / "bad.db"
        conn = sqlite3.connect(str(db_path))
        conn.execute(
            "CREATE TABLE meta (key TEXT PRIMARY KEY, value TEXT NOT NULL)"
        )
        conn.execute(
            "INSERT INTO meta (key, value) VALUES ('schema_version', '999')"
        )
        conn.commit()
        conn.close()

        with pytest.raises(PromptlibError) as exc_info:
            Storage(db_path=db_path)
        assert exc_info.value.code == ErrorCode.SCHEMA_VERSION


class TestPersistence:
    def test_data_persists_across_instances(self, tmp_path):
        db_path = tmp_path / "persist.db"
        s1 = Storage(db_path=db_path)
        s1.save_prompt(
            Prompt(
                name="persistent",
                content="I persist {{x}}",
                variables=[VariableDefinition(name="x", default_value="1")],
            )
        )
        s1.close()

        s2 = Storage(db_path=db_path)
        result = s2.get_prompt("persistent")
        assert result.content == "I persist {{x}}"
        assert result.variables[0].default_value == "1"

    def test_older_store_rejected(self, tmp_path):
        db_path = tmp_path / "old.db"
        conn = sqlite3.connect(str(db_path))
        conn.execute(
            "CREATE TABLE meta (key TEXT PRIMARY KEY, value TEXT NOT NULL)"
        )
        conn.execute("INSERT INTO meta (key, value) VALUES ('schema_version', '1')")
        conn.commit()
        conn.close()

        with pytest.raises(PromptlibError) as exc_info:
            Storage(db_path=db_path)
        assert exc_info.value.code == ErrorCode.SCHEMA_VERSION


class TestContextManager:
    def test_closes_connection(self, tmp_path):
        with Storage(db_path=tmp_path / "ctx.db") as s:
            s.save_prompt(Prompt(name="p", content="{{x}}"))
        with pytest.raises(sqlite3.ProgrammingError):
            s._conn.execute("SELECT 1")

    def test_closes_on_error(self, tmp_path):
        with pytest.raises(PromptlibError):
            with Storage(db_path=tmp_path / "ctx.db") as s:
                s.get_prompt("missing")
        with pytest.raises(sqlite3.ProgrammingError):
            s._conn.execute("SELECT 1")


class TestTagsAndPlatform:
    def test_defaults(self, storage, sample_prompt):
        storage.save_prompt(sample_prompt)
        result = storage.get_prompt("test-prompt")
        assert result.tags == []
        assert result.platform == "OTHER"
        assert result.favorite is False

    def test_tags_round_trip_normalized(self, storage):
        storage.save_prompt(
            Prompt(name="p", content="x", tags=[" Coding ", "SQL", "Coding", ""])
        )
        assert storage.get_prompt("p").tags == ["Coding", "SQL"]

    def test_too_many_tags(self, storage):
        tags = [f"t{i}" for i in range(11)]
        with pytest.raises(PromptlibError) as exc_info:
            storage.save_prompt(Prompt(name="p", content="x", tags=tags))
        assert exc_info.value.code == ErrorCode.TOO_MANY_TAGS

    def test_platform_normalized(self, storage):
        storage.save_prompt(Prompt(name="p", content="x", platform="stable-diffusion"))
        assert storage.get_prompt("p").platform == "STABLE_DIFFUSION"

    def test_unknown_platform(self, storage):
        with pytest.raises(PromptlibError) as exc_info:
            storage.save_prompt(Prompt(name="p", content="x", platform="bard"))
        assert exc_info.value.code == ErrorCode.INVALID_PLATFORM

    def test_update_tags_and_platform(self, storage, sample_prompt):
        storage.save_prompt(sample_prompt)
        updated = storage.update_prompt("test-prompt", tags=["Email"], platform="claude")
        assert updated.tags == ["Email"]
        assert updated.platform == "CLAUDE"
        assert storage.get_prompt("test-prompt").tags == ["Email"]

    def test_list_filters(self, storage):
        storage.save_prompt(Prompt(name="a", content="x", tags=["Coding"], platform="CLAUDE"))
        storage.save_prompt(Prompt(name="b", content="x", tags=["Email", "SQL"]))
        storage.save_prompt(Prompt(name="c", content="x"))
        assert [p.name for p in storage.list_prompts(tags=["SQL", "Coding"])] == ["a", "b"]
        assert [p.name for p in storage.list_prompts(tags=["Email"])] == ["b"]
        assert [p.name for p in storage.list_prompts(platform="claude")] == ["a"]


class TestFavorites:
    def test_set_and_clear(self, storage, sample_prompt):
        storage.save_prompt(sample_prompt)
        assert storage.set_favorite("test-prompt").favorite is True
        assert storage.get_prompt("test-prompt").favorite is True
        assert storage.set_favorite("test-prompt", False).favorite is False

    def test_favorites_only(self, storage):
        storage.save_prompt(Prompt(name="a", content="x"))
        storage.save_prompt(Prompt(name="b", content="x"))
        storage.set_favorite("b")
        assert [p.name for p in storage.list_prompts(favorites_only=True)] == ["b"]

    def test_nonexistent_raises(self, storage):
        with pytest.raises(PromptlibError) as exc_info:
            storage.set_favorite("nonexistent")
        assert exc_info.value.code == ErrorCode.PROMPT_NOT_FOUND


class TestFork:
    def test_fork_copies_prompt(self, storage, sample_prompt):
        sample_prompt.tags = ["Writing"]
        sample_prompt.platform = "CHATGPT"
        original = storage.save_prompt(sample_prompt)
        storage.set_favorite("test-prompt")

        fork = storage.fork_prompt("test-prompt", "test-prompt-remix")
        stored = storage.get_prompt("test-prompt-remix")
        assert stored.content == original.content
        assert stored.variables == original.variables
        assert stored.tags == ["Writing"]
        assert stored.platform == "CHATGPT"
        assert stored.forked_from == original.id
        assert stored.id != original.id
        assert stored.favorite is False
        assert stored.copy_count == 0
        assert fork.name == "test-prompt-remix"

    def test_fork_counts_as_copy(self, storage, sample_prompt):
        storage.save_prompt(sample_prompt)
        storage.fork_prompt("test-prompt", "other")
        assert storage.get_prompt("test-prompt").copy_count == 1

    def test_fork_is_independent(self, storage, sample_prompt):
        storage.save_prompt(sample_prompt)
        storage.fork_prompt("test-prompt", "other")
        storage.update_prompt("other", content="Bye {{name}}")
        assert storage.get_prompt("test-prompt").variable_names == ["name", "place"]
        assert storage.get_prompt("other").variables == [
            VariableDefinition(name="name", description="Who to greet")
        ]

    def test_fork_to_existing_name(self, storage, sample_prompt):
        storage.save_prompt(sample_prompt)
        storage.save_prompt(Prompt(name="taken", content="x"))
        with pytest.raises(PromptlibError) as exc_info:
            storage.fork_prompt("test-prompt", "taken")
        assert exc_info.value.code == ErrorCode.PROMPT_ALREADY_EXISTS
        assert storage.get_prompt("test-prompt").copy_count == 0

    def test_fork_missing_source(self, storage):
        with pytest.raises(PromptlibError) as exc_info:
            storage.fork_prompt("nonexistent", "copy")
        assert exc_info.value.code == ErrorCode.PROMPT_NOT_FOUND
