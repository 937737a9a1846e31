# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Unit tests for the MongoDB storage adapters.

The collection is mocked; the tests pin the filters and updates sent to
MongoDB, in particular the conditional writes.
"""

import pytest
from datetime import datetime, timezone
from unittest.mock import MagicMock
from pymongo import ReturnDocument
from pymongo.errors import PyMongoError

from lifeline.models.entities import Acceptance, ServiceRequest
from lifeline.services.mongodb import MongoRequestStore, MongoUserDirectory
from lifeline.services.store import MOST_RECENT_ACCEPTANCE, RequestQuery

NOW = datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)


def stored_document(**overrides):
    document = ServiceRequest(
        id="65f000000000000000000001",
        type="blood",
        owner_id="U1",
        name="Patient Kim",
        phone="+15550001",
        location={"address": "12 Harbour Road"},
        details={"type": "blood", "blood_type": "O+", "urgency_level": "urgent"},
        created_at=NOW,
        updated_at=NOW
    ).to_document()
    document["_id"] = document.pop("id")
    document.update(overrides)
    return document


@pytest.fixture
def collection():
    return MagicMock()


@pytest.fixture
def mongo_store(collection):
    service = MagicMock()
    service.get_collection.return_value = collection
    return MongoRequestStore(service)


class TestQueryTranslation:
    """Test RequestQuery to MongoDB filter translation."""

    def test_empty_query(self, mongo_store):
        assert mongo_store._build_query(RequestQuery()) == {}

    def test_listing_filters(self, mongo_store):
        query = RequestQuery(type="blood", statuses=["pending", "accepted"], owner_id="U1")
        assert mongo_store._build_query(query) == {
            "type": "blood",
            "status": {"$in": ["pending", "accepted"]},
            "ownerId": {"$eq": "U1"}
        }

    def test_open_feed_filter(self, mongo_store):
        query = RequestQuery(type="blood", statuses=["pending"], exclude_owner_id="U2", unclaimed_only=True)
        mongo_query = mongo_store._build_query(query)
        assert mongo_query["ownerId"] == {"$ne": "U2"}
        assert mongo_query["accepters"] == {"$size": 0}

    def test_participant_filter(self, mongo_store):
        mongo_query = mongo_store._build_query(RequestQuery(participant_id="U2"))
        assert mongo_query["$or"] == [{"ownerId": "U2"}, {"accepters.userId": "U2"}]


class TestReads:
    """Test find, count and aggregation calls."""

    def test_find_sorts_and_pages(self, mongo_store, collection):
        cursor = collection.find.return_value
        cursor.sort.return_value.skip.return_value.limit.return_value = [stored_document()]

        requests = mongo_store.find(RequestQuery(owner_id="U1"), MOST_RECENT_ACCEPTANCE, skip=10, limit=5)

        cursor.sort.assert_called_once_with([("accepters.acceptedAt", -1), ("_id", -1)])
        cursor.sort.return_value.skip.assert_called_once_with(10)
        cursor.sort.return_value.skip.return_value.limit.assert_called_once_with(5)
        assert requests[0].id == "65f000000000000000000001"
        assert requests[0].owner_id == "U1"

    def test_count_by_groups_field(self, mongo_store, collection):
        collection.aggregate.return_value = [{"_id": "blood", "count": 2}, {"_id": "complaint", "count": 1}]

        counts = mongo_store.count_by(RequestQuery(owner_id="U1"), "type")

        pipeline = collection.aggregate.call_args[0][0]
        assert pipeline[1] == {"$group": {"_id": "$type", "count": {"$sum": 1}}}
        assert counts == {"blood": 2, "complaint": 1}

    def test_get_missing(self, mongo_store, collection):
        collection.find_one.return_value = None
        assert mongo_store.get_by_id("missing") is None

    def test_errors_propagate(self, mongo_store, collection):
        collection.count_documents.side_effect = PyMongoError("connection reset")
        with pytest.raises(PyMongoError):
            mongo_store.count(RequestQuery())


class TestConditionalWrites:
    """Test the atomic accept and pending-guarded update."""

    def test_accept_if_unclaimed_filter_and_update(self, mongo_store, collection):
        acceptance = Acceptance(user_id="U2", accepted_at=NOW)
        collection.find_one_and_update.return_value = stored_document(
            status="accepted",
            accepters=[acceptance.to_document()]
        )

        committed = mongo_store.accept_if_unclaimed("65f000000000000000000001", acceptance, NOW)

        condition, update = collection.find_one_and_update.call_args[0]
        assert condition == {
            "_id": "65f000000000000000000001",
            "type": "blood",
            "ownerId": {"$ne": "U2"},
            "accepters": {"$size": 0}
        }
        assert update == {
            "$push": {"accepters": {"userId": "U2", "acceptedAt": NOW, "status": "accepted"}},
            "$set": {"status": "accepted", "updatedAt": NOW}
        }
        assert collection.find_one_and_update.call_args[1]["return_document"] == ReturnDocument.AFTER
        assert committed.is_accepter("U2")

    def test_accept_if_unclaimed_no_match(self, mongo_store, collection):
        collection.find_one_and_update.return_value = None
        acceptance = Acceptance(user_id="U3", accepted_at=NOW)
        assert mongo_store.accept_if_unclaimed("65f000000000000000000001", acceptance, NOW) is None

    def test_update_if_pending(self, mongo_store, collection):
        collection.find_one_and_update.return_value = stored_document(name="Renamed")

        committed = mongo_store.update_if_pending("65f000000000000000000001", {"name": "Renamed"}, NOW)

        condition, update = collection.find_one_and_update.call_args[0]
        assert condition == {"_id": "65f000000000000000000001", "status": "pending"}
        assert update == {"$set": {"name": "Renamed", "updatedAt": NOW}}
        assert committed.name == "Renamed"

    def test_save_upserts(self, mongo_store, collection):
        request = ServiceRequest.model_validate({**stored_document(), "id": "65f000000000000000000001"})

        mongo_store.save(request)

        selector, document = collection.replace_one.call_args[0]
        assert selector == {"_id": "65f000000000000000000001"}
        assert "id" not in document
        assert collection.replace_one.call_args[1] == {"upsert": True}


class TestUserDirectory:
    """Test profile lookups."""

    def test_get_many_matches_string_and_object_ids(self, collection):
        service = MagicMock()
        service.get_collection.return_value = collection
        collection.find.return_value = [
            {"_id": "U1", "name": "Asha", "phone": "+15550001"},
        ]

        profiles = MongoUserDirectory(service).get_many(["U1", "U1"])

        assert collection.find.call_args[0][0] == {"_id": {"$in": ["U1"]}}
        assert profiles["U1"].phone == "+15550001"
