"""
Shared fixtures.

MongoDB is replaced by an in-memory stand-in for the small part of the
motor collection API the services use. Outbound collaborators (Messenger,
AI provider, MoMo) are replaced with recorders.
"""

import copy
import itertools
from types import SimpleNamespace

import pytest
from pymongo import ReturnDocument, DESCENDING
from pymongo.errors import DuplicateKeyError

from app.core.config import settings
from app.db import mongo
from app.services.ai_service import ai_service
from app.services.messenger_service import messenger_service
from app.services.momo_service import momo_service

_MISSING = object()


def _lookup(doc, dotted_key):
    value = doc
    for part in dotted_key.split("."):
        if not isinstance(value, dict) or part not in value:
            return _MISSING
        value = value[part]
    return value


def _matches_condition(value, condition):
    if isinstance(condition, dict) and condition and all(k.startswith("$") for k in condition):
        for op, expected in condition.items():
            if op == "$in":
                if value is _MISSING or value not in expected:
                    return False
            elif op == "$nin":
                if value is not _MISSING and value in expected:
                    return False
            elif op == "$ne":
                if value is not _MISSING and value == expected:
                    return False
            elif op == "$exists":
                if (value is not _MISSING) != bool(expected):
                    return False
            elif op == "$lt":
                if value is _MISSING or value is None or not value < expected:
                    return False
            elif op == "$lte":
                if value is _MISSING or value is None or not value <= expected:
                    return False
            elif op == "$gt":
                if value is _MISSING or value is None or not value > expected:
                    return False
            elif op == "$gte":
                if value is _MISSING or value is None or not value >= expected:
                    return False
            else:
                raise NotImplementedError(op)
        return True

    if value is _MISSING:
        return condition is None
    return value == condition


def _matches(doc, query):
    return all(_matches_condition(_lookup(doc, key), cond) for key, cond in (query or {}).items())


def _set_path(doc, dotted_key, value):
    parts = dotted_key.split(".")
    target = doc
    for part in parts[:-1]:
        target = target.setdefault(part, {})
    target[parts[-1]] = value


def _unset_path(doc, dotted_key):
    parts = dotted_key.split(".")
    target = doc
    for part in parts[:-1]:
        target = target.get(part)
        if not isinstance(target, dict):
            return
    target.pop(parts[-1], None)


def _apply_update(doc, update):
    before = copy.deepcopy(doc)
    for key, value in update.get("$set", {}).items():
        _set_path(doc, key, copy.deepcopy(value))
    for key, amount in update.get("$inc", {}).items():
        current = _lookup(doc, key)
        _set_path(doc, key, (0 if current is _MISSING else current) + amount)
    for key in update.get("$unset", {}):
        _unset_path(doc, key)
    return doc != before


class FakeCursor:
    def __init__(self, docs):
        self._docs = docs
        self._limit = None

    def sort(self, key, direction=1):
        self._docs.sort(key=lambda d: _lookup(d, key), reverse=direction == DESCENDING)
        return self

    def limit(self, count):
        self._limit = count
        return self

    def _results(self):
        docs = self._docs if self._limit is None else self._docs[:self._limit]
        return [copy.deepcopy(d) for d in docs]

    async def to_list(self, length=None):
        docs = self._results()
        return docs if length is None else docs[:length]

    def __aiter__(self):
        self._iter = iter(self._results())
        return self

    async def __anext__(self):
        try:
            return next(self._iter)
        except StopIteration:
            raise StopAsyncIteration


class FakeCollection:
    def __init__(self, name, unique_keys=()):
        self.name = name
        self.unique_keys = tuple(unique_keys)
        self.docs = []
        self.indexes = {"_id_": {"key": [("_id", 1)]}}
        self._ids = itertools.count(1)

    def _check_unique(self, candidate, ignore=None):
        for key in self.unique_keys:
            value = _lookup(candidate, key)
            for doc in self.docs:
                if doc is not ignore and _lookup(doc, key) == value:
                    raise DuplicateKeyError(f"E11000 duplicate key error collection: {self.name} {key}", 11000)

    def _first(self, query):
        for doc in self.docs:
            if _matches(doc, query):
                return doc
        return None

    async def find_one(self, query=None):
        doc = self._first(query)
        return copy.deepcopy(doc) if doc is not None else None

    def find(self, query=None):
        return FakeCursor([d for d in self.docs if _matches(d, query)])

    async def insert_one(self, document):
        doc = copy.deepcopy(document)
        doc.setdefault("_id", next(self._ids))
        self._check_unique(doc)
        self.docs.append(doc)
        return SimpleNamespace(inserted_id=doc["_id"])

    async def update_one(self, query, update, upsert=False):
        doc = self._first(query)
        if doc is None:
            return SimpleNamespace(matched_count=0, modified_count=0, upserted_id=None)
        modified = _apply_update(doc, update)
        return SimpleNamespace(matched_count=1, modified_count=int(modified), upserted_id=None)

    async def update_many(self, query, update):
        matched = [d for d in self.docs if _matches(d, query)]
        modified = sum(int(_apply_update(d, update)) for d in matched)
        return SimpleNamespace(matched_count=len(matched), modified_count=modified)

    async def find_one_and_update(self, query, update, return_document=ReturnDocument.BEFORE):
        doc = self._first(query)
        if doc is None:
            return None
        before = copy.deepcopy(doc)
        _apply_update(doc, update)
        return copy.deepcopy(doc) if return_document == ReturnDocument.AFTER else before

    async def count_documents(self, query):
        return sum(1 for d in self.docs if _matches(d, query))

    async def create_index(self, keys, **kwargs):
        name = kwargs.get("name") or str(keys)
        self.indexes[name] = {"key": keys, **kwargs}
        return name

    async def index_information(self):
        return dict(self.indexes)


class FakeDatabase:
    UNIQUE_KEYS = {
        mongo.USERS_COLLECTION: ("identity",),
        mongo.PAYMENT_REQUESTS_COLLECTION: ("reference_id",),
    }

    def __init__(self):
        self.collections = {}

    def __getitem__(self, name):
        if name not in self.collections:
            self.collections[name] = FakeCollection(name, self.UNIQUE_KEYS.get(name, ()))
        return self.collections[name]

    @property
    def users(self):
        return self[mongo.USERS_COLLECTION]

    @property
    def payment_requests(self):
        return self[mongo.PAYMENT_REQUESTS_COLLECTION]


class MessageRecorder:
    def __init__(self):
        self.deliveries = []

    async def deliver(self, recipient_id, replies):
        for reply in replies:
            self.deliveries.append((recipient_id, copy.deepcopy(reply)))

    def texts(self, recipient_id=None):
        return [r["text"] for who, r in self.deliveries if recipient_id is None or who == recipient_id]

    def buttons(self, recipient_id=None):
        payloads = []
        for who, r in self.deliveries:
            if recipient_id is None or who == recipient_id:
                payloads.extend(b["payload"] for b in r.get("buttons", []))
        return payloads

    def clear(self):
        self.deliveries.clear()


class FakeGateway:
    def __init__(self):
        self.requests = []
        self.fail_with = None
        self._external_ids = itertools.count(1)

    async def request_to_pay(self, phone_number, amount, currency, reference_id, plan_type, payer_identity):
        self.requests.append({
            "phone_number": phone_number,
            "amount": amount,
            "currency": currency,
            "reference_id": reference_id,
            "plan_type": plan_type,
            "payer_identity": payer_identity,
        })
        if self.fail_with:
            return {"success": False, "error": self.fail_with}
        return {"success": True, "external_id": f"ext-{next(self._external_ids)}", "status_code": 202}


class FakeAI:
    def __init__(self):
        self.prompts = []
        self.answer = "Here is your answer."
        self.error = None

    async def generate(self, prompt_text):
        self.prompts.append(prompt_text)
        if self.error is not None:
            raise self.error
        return self.answer


@pytest.fixture
def fake_db(monkeypatch):
    db = FakeDatabase()
    monkeypatch.setattr(mongo, "_database", db)
    return db


@pytest.fixture
def sent(monkeypatch):
    recorder = MessageRecorder()
    monkeypatch.setattr(messenger_service, "deliver", recorder.deliver)
    return recorder


@pytest.fixture
def gateway(monkeypatch):
    fake = FakeGateway()
    monkeypatch.setattr(momo_service, "request_to_pay", fake.request_to_pay)
    return fake


@pytest.fixture
def ai(monkeypatch):
    fake = FakeAI()
    monkeypatch.setattr(ai_service, "generate", fake.generate)
    return fake


@pytest.fixture
def quota_settings(monkeypatch):
    monkeypatch.setattr(settings, "TRIAL_MESSAGES_PER_DAY", 3)
    monkeypatch.setattr(settings, "SUBSCRIPTION_MESSAGES_PER_DAY", 30)
    monkeypatch.setattr(settings, "TIMEZONE", "Africa/Juba")
    monkeypatch.setattr(settings, "SANDBOX_BYPASS_ENABLED", False)
    monkeypatch.setattr(settings, "PAYMENT_TIMEOUT_MINUTES", 15)
    return settings
