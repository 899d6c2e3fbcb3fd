import os
import re

os.environ.setdefault("ENVIRONMENT", "testing")

import pytest

from app.models.schemas import ResumeRecord, SearchMetadata


class FakeCursor:
    def __init__(self, docs):
        self._docs = docs
        self._limit = None

    def limit(self, n):
        self._limit = n
        return self

    async def to_list(self, length=None):
        docs = self._docs if self._limit is None else self._docs[:self._limit]
        return [dict(d) for d in docs]


class FakeResumeCollection:
    """Just enough of a Motor collection for ``$or`` / ``$regex`` keyword queries"""

    def __init__(self, docs, fail_with: Exception = None):
        self.docs = docs
        self.fail_with = fail_with
        self.queries = []

    def find(self, query, projection=None):
        if self.fail_with:
            raise self.fail_with
        self.queries.append(query)
        matched = [d for d in self.docs if self._matches(d, query)]
        return FakeCursor(matched)

    @staticmethod
    def _matches(doc, query):
        for clause in query["$or"]:
            for field, cond in clause.items():
                flags = re.IGNORECASE if "i" in cond.get("$options", "") else 0
                if re.search(cond["$regex"], doc.get(field) or "", flags):
                    return True
        return False


class FakeVectorStore:
    """Returns canned ``(record, similarity)`` pairs in the given order"""

    def __init__(self, pairs=None, fail_with: Exception = None):
        self.pairs = pairs or []
        self.fail_with = fail_with
        self.calls = []

    async def search_with_scores(self, query, k):
        self.calls.append((query, k))
        if self.fail_with:
            raise self.fail_with
        return self.pairs[:k]


def resume_doc(file_name, content, email="someone@example.com", phone="+1 555 0100"):
    return {"fileName": file_name, "email": email, "phoneNumber": phone, "fullContent": content}


def record(file_name, content="", **kwargs):
    return ResumeRecord.from_document(resume_doc(file_name, content, **kwargs))


@pytest.fixture
def metadata():
    return SearchMetadata(trace_id="test-trace", start_time=0.0, search_type="keyword")


@pytest.fixture
def resume_docs():
    return [
        resume_doc("alice.pdf", "QA engineer. Selenium WebDriver and Selenium Grid. Python."),
        resume_doc("bob.pdf", "Automation tester using Selenium with Java."),
        resume_doc("carol.pdf", "Backend developer. Go, Kubernetes, Postgres."),
        resume_doc("selenium_expert.pdf", "Test automation lead, ten years of experience."),
        resume_doc("dave.pdf", "Mobile QA with Appium. Some Selenium exposure."),
    ]
