"""In-memory stand-ins for the Supabase client and the LLM client.

FakeSupabase implements the subset of the postgrest query builder the
services use, evaluated over lists of dicts.
"""
import uuid
from datetime import datetime, timezone
from types import SimpleNamespace


class FakeStorageError(Exception):
    pass


def _matches_text(row_value, text: str) -> bool:
    if isinstance(row_value, bool):
        return row_value == (text.lower() == "true")
    return str(row_value) == text


def _parse_or(expression: str):
    conditions = []
    for part in expression.split(","):
        column, op, value = part.split(".", 2)
        assert op == "eq", f"unsupported or_ operator {op}"
        conditions.append((column, value))
    return lambda row: any(_matches_text(row.get(c), v) for c, v in conditions)


class FakeQuery:
    def __init__(self, client, table):
        self.client = client
        self.table = table
        self.action = "select"
        self.columns = "*"
        self.count = None
        self.filters = []
        self.orders = []
        self.start = None
        self.end = None
        self.payload = None
        self.on_conflict = None

    # query builders

    def select(self, columns="*", count=None):
        self.columns = columns
        self.count = count
        return self

    def insert(self, payload):
        self.action = "insert"
        self.payload = payload
        return self

    def upsert(self, payload, on_conflict=None):
        self.action = "upsert"
        self.payload = payload
        self.on_conflict = on_conflict
        return self

    def delete(self):
        self.action = "delete"
        return self

    def eq(self, column, value):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def gte(self, column, value):
        self.filters.append(lambda row: row.get(column) is not None and row.get(column) >= value)
        return self

    def lte(self, column, value):
        self.filters.append(lambda row: row.get(column) is not None and row.get(column) <= value)
        return self

    def in_(self, column, values):
        values = list(values)
        self.filters.append(lambda row: row.get(column) in values)
        return self

    def overlaps(self, column, values):
        wanted = set(values)
        self.filters.append(lambda row: bool(wanted & set(row.get(column) or [])))
        return self

    def or_(self, expression):
        self.filters.append(_parse_or(expression))
        return self

    def order(self, column, desc=False):
        self.orders.append((column, desc))
        return self

    def range(self, start, end):
        self.start, self.end = start, end
        return self

    def limit(self, size):
        self.start, self.end = 0, size - 1
        return self

    # execution

    def execute(self):
        self.client.calls.append((self.table, self.action))
        self.client.maybe_fail(self.table, self.action)
        rows = self.client.tables.setdefault(self.table, [])

        if self.action == "insert":
            return self._respond(self._insert(rows, self.payload))
        if self.action == "upsert":
            return self._respond(self._upsert(rows))
        if self.action == "delete":
            doomed = [r for r in rows if self._keep(r)]
            self.client.tables[self.table] = [r for r in rows if not self._keep(r)]
            return self._respond(doomed)

        matched = [r for r in rows if self._keep(r)]
        for column, desc in reversed(self.orders):
            matched.sort(key=lambda r: (r.get(column) is None, r.get(column)), reverse=desc)
        total = len(matched)
        if self.start is not None:
            matched = matched[self.start:self.end + 1]
        return self._respond([self._project(r) for r in matched], total if self.count else None)

    def _keep(self, row):
        return all(f(row) for f in self.filters)

    def _project(self, row):
        if self.columns.strip() == "*":
            return dict(row)
        names = [c.strip() for c in self.columns.split(",")]
        return {n: row.get(n) for n in names}

    @staticmethod
    def _stamp(record):
        now = datetime.now(timezone.utc).isoformat()
        record.setdefault("id", str(uuid.uuid4()))
        record.setdefault("created_at", now)
        record.setdefault("updated_at", now)
        return record

    def _insert(self, rows, payload):
        records = payload if isinstance(payload, list) else [payload]
        inserted = [self._stamp(dict(r)) for r in records]
        rows.extend(inserted)
        return [dict(r) for r in inserted]

    def _upsert(self, rows):
        keys = [k.strip() for k in self.on_conflict.split(",")]
        for row in rows:
            if all(row.get(k) == self.payload.get(k) for k in keys):
                row.update(self.payload)
                return [dict(row)]
        return self._insert(rows, self.payload)

    @staticmethod
    def _respond(data, count=None):
        return SimpleNamespace(data=data, count=count)


class FakeAuth:
    def __init__(self, users):
        self.users = users

    def get_user(self, token):
        user = self.users.get(token)
        if user is None:
            raise FakeStorageError("invalid JWT")
        return SimpleNamespace(user=user)


class FakeSupabase:
    def __init__(self, tables=None, users=None):
        self.tables = tables or {}
        self.auth = FakeAuth(users or {})
        self.calls = []
        self.failures = {}

    def table(self, name):
        return FakeQuery(self, name)

    def fail(self, table, action, after=0):
        """Make the (after+1)-th matching call, and every later one, raise."""
        self.failures[(table, action)] = after

    def maybe_fail(self, table, action):
        remaining = self.failures.get((table, action))
        if remaining is None:
            return
        if remaining <= 0:
            raise FakeStorageError(f"{action} on {table} failed")
        self.failures[(table, action)] = remaining - 1

    def rows(self, table):
        return self.tables.get(table, [])


class FakeAIClient:
    """Scripted model answers and similarity scores."""

    def __init__(self, model_answer="Model answer", similarity=(1.0, 1.0), fail_generation=False):
        self.model_answer = model_answer
        self.similarity = similarity
        self.fail_generation = fail_generation
        self.prompts = []
        self.similarity_calls = []

    def generate_model_answer(self, subject, question_prompt):
        from upsc_pyq.core.exceptions import AIIntegrationError

        self.prompts.append((subject, question_prompt))
        if self.fail_generation:
            raise AIIntegrationError("All AI providers failed")
        return self.model_answer

    def semantic_similarity(self, user_answer, correct_answer, max_marks):
        self.similarity_calls.append((user_answer, correct_answer, max_marks))
        if isinstance(self.similarity, Exception):
            raise self.similarity
        return self.similarity


def make_user(user_id, role="student", name="Test User"):
    return SimpleNamespace(
        id=user_id,
        email=f"{user_id}@example.com",
        user_metadata={"role": role, "name": name},
    )


def make_question(question_id, **overrides):
    row = {
        "id": question_id,
        "question_text": f"Question {question_id}",
        "year": 2020,
        "subject": "Polity",
        "exam_type": "Mains",
        "keywords": [],
        "options": None,
        "correct_answer": None,
        "explanation": None,
        "question_type": "descriptive",
        "marks": 10,
        "user_id": None,
        "is_database_question": True,
        "created_at": "2024-01-01T00:00:00+00:00",
        "updated_at": "2024-01-01T00:00:00+00:00",
    }
    row.update(overrides)
    return row


def make_mcq(question_id, **overrides):
    defaults = {
        "question_type": "mcq",
        "exam_type": "Prelims",
        "options": ["Option A", "Option B", "Option C", "Option D"],
        "correct_answer": "B",
        "marks": 2,
    }
    defaults.update(overrides)
    return make_question(question_id, **defaults)
