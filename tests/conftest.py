import asyncio
import copy
import re
from contextlib import asynccontextmanager
from types import SimpleNamespace

import pytest

from interview_insights.config import Settings
from interview_insights.database.session_service import SessionService

SESSION_COLUMNS = (
    "session_id", "candidate_name", "candidate_email", "position", "status",
    "vapi_call_id", "vapi_assistant_id", "duration", "final_transcript", "recording_url",
    "vapi_summary", "vapi_success_evaluation", "vapi_structured_data",
    "analysis_score", "analysis_feedback", "category_scores", "strengths",
    "areas_for_improvement", "hiring_recommendation", "key_insights",
    "question_scores", "interview_metrics",
    "started_at", "completed_at", "created_at", "updated_at",
)

SELECT_PATTERN = re.compile(
    r"SELECT (?P<columns>.+?) FROM interview_sessions WHERE (?P<key>\w+) = \$1(?P<for_update> FOR UPDATE)?",
    re.DOTALL,
)
UPDATE_PATTERN = re.compile(
    r"UPDATE interview_sessions SET (?P<assignments>.+) WHERE session_id = \$(?P<key_idx>\d+)",
    re.DOTALL,
)


class FakeConnection:
    """asyncpg 连接的内存替身，只实现会话服务用到的语句"""

    def __init__(self, db: "FakeDatabase"):
        self.db = db
        self.held_locks = []

    @asynccontextmanager
    async def transaction(self):
        snapshot = copy.deepcopy(self.db.rows)
        try:
            yield
        except BaseException:
            self.db.rows = snapshot
            self.db.rollbacks += 1
            raise
        finally:
            # 行锁持有到事务结束
            while self.held_locks:
                self.held_locks.pop().release()

    async def fetchrow(self, sql, *args):
        match = SELECT_PATTERN.search(sql)
        if not match:
            raise AssertionError(f"unexpected query: {sql}")
        if match.group("for_update"):
            self.db.row_locks += 1
            lock = self.db.locks.setdefault(args[0], asyncio.Lock())
            if lock not in self.held_locks:
                await lock.acquire()
                self.held_locks.append(lock)
        elif self.db.read_delay:
            await asyncio.sleep(self.db.read_delay)

        key = match.group("key")
        columns = [column.strip() for column in match.group("columns").split(",")]
        for row in self.db.rows.values():
            if row.get(key) == args[0]:
                return {column: row[column] for column in columns}
        return None

    async def execute(self, sql, *args):
        self.db.statements.append(sql)
        if sql.lstrip().startswith(("CREATE", "ALTER")):
            return "CREATE"

        match = UPDATE_PATTERN.search(sql)
        if not match:
            raise AssertionError(f"unexpected statement: {sql}")
        if self.db.fail_updates:
            raise ConnectionError("database unavailable")

        session_id = args[int(match.group("key_idx")) - 1]
        row = self.db.rows.get(session_id)
        if row is None:
            return "UPDATE 0"

        for assignment in match.group("assignments").split(","):
            column, placeholder = (part.strip() for part in assignment.split("="))
            row[column] = args[int(placeholder.lstrip("$")) - 1]
        self.db.updates.append((session_id, args))
        return "UPDATE 1"


class FakeDatabase:
    """DatabaseManager 的替身：rows 以 session_id 为键"""

    def __init__(self):
        self.config = {"host": "localhost", "port": 5432, "database": "test"}
        self.rows = {}
        self.statements = []
        self.updates = []
        self.row_locks = 0
        self.rollbacks = 0
        self.fail_updates = False
        self.locks = {}
        self.read_delay = 0

    def add_session(self, session_id, candidate_name="Jane Doe", position="Frontend Engineer", **columns):
        row = {column: None for column in SESSION_COLUMNS}
        row.update(session_id=session_id, candidate_name=candidate_name, position=position, status="in_progress")
        row.update(columns)
        self.rows[session_id] = row
        return row

    @asynccontextmanager
    async def get_connection(self):
        yield FakeConnection(self)


class StubLLM:
    """只实现 ainvoke 的聊天模型替身"""

    def __init__(self, content="{}", error=None):
        self.content = content
        self.error = error
        self.calls = []

    async def ainvoke(self, messages):
        self.calls.append(messages)
        if self.error:
            raise self.error
        return SimpleNamespace(content=self.content)


@pytest.fixture
def fake_db():
    return FakeDatabase()


@pytest.fixture
def session_service(fake_db):
    return SessionService(fake_db)


@pytest.fixture
def settings():
    return Settings(webhook_secret="test-secret", min_transcript_chars=50)


@pytest.fixture
def make_llm():
    return StubLLM
