import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path

from . import config
from .engine import VariableDefinition, sync_variables
from .errors import PromptlibError
from .models import SCHEMA_VERSION, Prompt, normalize_platform, normalize_tags

logger = logging.getLogger(__name__)


class Storage:
    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or config.db_path()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self.db_path))
        self._conn.row_factory = sqlite3.Row
        self.init_db()

    def __enter__(self) -> "Storage":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def init_db(self) -> None:
        try:
            self._conn.executescript("""
                CREATE TABLE IF NOT EXISTS meta (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS prompts (
                    id TEXT PRIMARY KEY,
                    name TEXT UNIQUE NOT NULL,
                    content TEXT NOT NULL,
                    description TEXT NOT NULL DEFAULT '',
                    category TEXT NOT NULL DEFAULT 'general',
                    variables TEXT NOT NULL DEFAULT '[]',
                    tags TEXT NOT NULL DEFAULT '[]',
                    platform TEXT NOT NULL DEFAULT 'OTHER',
                    favorite INTEGER NOT NULL DEFAULT 0,
                    forked_from TEXT,
                    copy_count INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    record_type TEXT NOT NULL DEFAULT 'prompt',
                    schema_version INTEGER NOT NULL DEFAULT 2
                );
            """)
            row = self._conn.execute(
                "SELECT value FROM meta WHERE key = 'schema_version'"
            ).fetchone()
            if row is None:
                self._conn.execute(
                    "INSERT INTO meta (key, value) VALUES ('schema_version', ?)",
                    (str(SCHEMA_VERSION),),
                )
                self._conn.commit()
                logger.info("Initialized prompt store at %s", self.db_path)
            else:
                self.check_schema_version(int(row["value"]))
        except sqlite3.Error as e:
            raise PromptlibError.storage(str(e)) from e

    def check_schema_version(self, version: int) -> None:
        if version != SCHEMA_VERSION:
            raise PromptlibError.schema_version(SCHEMA_VERSION, version)

    def close(self) -> None:
        self._conn.close()

    def _row_to_prompt(self, row: sqlite3.Row) -> Prompt:
        return Prompt(
            id=row["id"],
            name=row["name"],
            content=row["content"],
            description=row["description"],
            category=row["category"],
            variables=[
                VariableDefinition.from_dict(v) for v in json.loads(row["variables"])
            ],
            tags=json.loads(row["tags"]),
            platform=row["platform"],
            favorite=bool(row["favorite"]),
            forked_from=row["forked_from"],
            copy_count=row["copy_count"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            record_type=row["record_type"],
            schema_version=row["schema_version"],
        )

    @staticmethod
    def _dump_variables(variables: list[VariableDefinition]) -> str:
        return json.dumps([v.to_dict() for v in variables])

    def save_prompt(self, prompt: Prompt) -> Prompt:
        prompt.tags = normalize_tags(prompt.tags)
        prompt.platform = normalize_platform(prompt.platform)
        try:
            self._conn.execute(
                """INSERT INTO prompts
                   (id, name, content, description, category, variables, tags,
                    platform, favorite, forked_from, copy_count, created_at,
                    updated_at, record_type, schema_version)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    prompt.id,
                    prompt.name,
                    prompt.content,
                    prompt.description,
                    prompt.category,
                    self._dump_variables(prompt.variables),
                    json.dumps(prompt.tags),
                    prompt.platform,
                    int(prompt.favorite),
                    prompt.forked_from,
                    prompt.copy_count,
                    prompt.created_at,
                    prompt.updated_at,
                    prompt.record_type,
                    prompt.schema_version,
                ),
            )
            self._conn.commit()
        except sqlite3.IntegrityError:
            raise PromptlibError.prompt_already_exists(prompt.name)
        except sqlite3.Error as e:
            raise PromptlibError.storage(str(e)) from e
        logger.info(
            "Saved prompt %s with %d variables", prompt.name, len(prompt.variables)
        )
        return prompt

    def get_prompt(self, name: str) -> Prompt:
        try:
            row = self._conn.execute(
                "SELECT * FROM prompts WHERE name = ?", (name,)
            ).fetchone()
        except sqlite3.Error as e:
            raise PromptlibError.storage(str(e)) from e
        if row is None:
            raise PromptlibError.prompt_not_found(name)
        return self._row_to_prompt(row)

    def update_prompt(
        self,
        name: str,
        content: str | None = None,
        description: str | None = None,
        category: str | None = None,
        variables: list[VariableDefinition] | None = None,
        tags: list[str] | None = None,
        platform: str | None = None,
    ) -> Prompt:
        """Update fields of a stored prompt.

        The variable list is always re-synced against the (possibly new)
        content before it is written, so stored definitions never name a
        variable the text does not contain.
        """
        prompt = self.get_prompt(name)
        if content is not None:
            prompt.content = content
        if description is not None:
            prompt.description = description
        if category is not None:
            prompt.category = category
        if tags is not None:
            prompt.tags = normalize_tags(tags)
        if platform is not None:
            prompt.platform = normalize_platform(platform)
        prompt.variables = sync_variables(
            variables if variables is not None else prompt.variables,
            prompt.content,
        )
        prompt.updated_at = datetime.now(timezone.utc).isoformat()
        try:
            self._conn.execute(
                """UPDATE prompts
                   SET content = ?, description = ?, category = ?, variables = ?,
                       tags = ?, platform = ?, updated_at = ?
                   WHERE name = ?""",
                (
                    prompt.content,
                    prompt.description,
                    prompt.category,
                    self._dump_variables(prompt.variables),
                    json.dumps(prompt.tags),
                    prompt.platform,
                    prompt.updated_at,
                    name,
                ),
            )
            self._conn.commit()
        except sqlite3.Error as e:
            raise PromptlibError.storage(str(e)) from e
        logger.info("Updated prompt %s", name)
        return prompt

    def delete_prompt(self, name: str) -> Prompt:
        prompt = self.get_prompt(name)
        try:
            self._conn.execute("DELETE FROM prompts WHERE name = ?", (name,))
            self._conn.commit()
        except sqlite3.Error as e:
            raise PromptlibError.storage(str(e)) from e
        logger.info("Deleted prompt %s", name)
        return prompt

    def list_prompts(
        self,
        category: str | None = None,
        tags: list[str] | None = None,
        platform: str | None = None,
        favorites_only: bool = False,
    ) -> list[Prompt]:
        """List prompts by name. ``tags`` matches prompts carrying any of them."""
        clauses: list[str] = []
        params: list = []
        if category:
            clauses.append("category = ?")
            params.append(category)
        if platform:
            clauses.append("platform = ?")
            params.append(normalize_platform(platform))
        if favorites_only:
            clauses.append("favorite = 1")
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        try:
            rows = self._conn.execute(
                f"SELECT * FROM prompts {where} ORDER BY name", params
            ).fetchall()
        except sqlite3.Error as e:
            raise PromptlibError.storage(str(e)) from e

        prompts = [self._row_to_prompt(row) for row in rows]
        wanted = set(normalize_tags(tags)) if tags else None
        if wanted:
            prompts = [p for p in prompts if wanted.intersection(p.tags)]
        return prompts

    def recent_prompts(self, limit: int = 10) -> list[Prompt]:
        try:
            rows = self._conn.execute(
                "SELECT * FROM prompts ORDER BY updated_at DESC, rowid DESC LIMIT ?",
                (limit,),
            ).fetchall()
        except sqlite3.Error as e:
            raise PromptlibError.storage(str(e)) from e
        return [self._row_to_prompt(row) for row in rows]

    def record_copy(self, name: str) -> Prompt:
        self.get_prompt(name)
        now = datetime.now(timezone.utc).isoformat()
        try:
            self._conn.execute(
                "UPDATE prompts SET copy_count = copy_count + 1, updated_at = ? WHERE name = ?",
                (now, name),
            )
            self._conn.commit()
        except sqlite3.Error as e:
            raise PromptlibError.storage(str(e)) from e
        return self.get_prompt(name)

    def set_favorite(self, name: str, favorite: bool = True) -> Prompt:
        self.get_prompt(name)
        try:
            self._conn.execute(
                "UPDATE prompts SET favorite = ? WHERE name = ?",
                (int(favorite), name),
            )
            self._conn.commit()
        except sqlite3.Error as e:
            raise PromptlibError.storage(str(e)) from e
        logger.info("%s prompt %s", "Starred" if favorite else "Unstarred", name)
        return self.get_prompt(name)

    def fork_prompt(self, source: str, new_name: str) -> Prompt:
        """Copy a prompt under a new name and count the fork as a copy of the source.

        The fork keeps the text, description, category, tags, platform and
        variable metadata. It starts unstarred with no copies of its own.
        """
        original = self.get_prompt(source)
        fork = Prompt(
            name=new_name,
            content=original.content,
            description=original.description,
            category=original.category,
            variables=sync_variables(original.variables, original.content),
            tags=list(original.tags),
            platform=original.platform,
            forked_from=original.id,
        )
        self.save_prompt(fork)
        self.record_copy(source)
        logger.info("Forked prompt %s as %s", source, new_name)
        return fork
