# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Unit tests for Pydantic models.
"""

import pytest
from datetime import datetime
from pydantic import ValidationError

from lifeline.models.entities import (
    Acceptance, BloodDetails, ComplaintDetails, Location, ServiceRequest
)
from lifeline.models.enums import RequestStatus, RequestType
from lifeline.models.responses import RequestPage


def make_request(**overrides):
    data = {
        "type": "blood",
        "owner_id": "U1",
        "name": "Patient Kim",
        "phone": "+15550001",
        "location": {"address": "12 Harbour Road"},
        "details": {"type": "blood", "blood_type": "A-", "urgency_level": "high"},
    }
    data.update(overrides)
    return ServiceRequest(**data)


class TestServiceRequestModel:
    """Test ServiceRequest validation."""

    def test_valid_request_defaults(self):
        """New requests start pending with no accepters."""
        request = make_request()
        assert request.status == RequestStatus.PENDING.value
        assert request.accepters == []
        assert request.schema_version == 1
        assert isinstance(request.created_at, datetime)
        assert isinstance(request.details, BloodDetails)

    def test_details_must_match_type(self):
        """Details of another kind are rejected."""
        with pytest.raises(ValidationError) as exc_info:
            make_request(type="complaint")

        assert "do not match request type" in str(exc_info.value)

    def test_foreign_fields_rejected(self):
        """A blood payload cannot carry complaint fields."""
        with pytest.raises(ValidationError):
            make_request(details={
                "type": "blood",
                "blood_type": "A-",
                "urgency_level": "high",
                "title": "Not a blood field"
            })

    def test_owner_cannot_be_accepter(self):
        with pytest.raises(ValidationError) as exc_info:
            make_request(accepters=[Acceptance(user_id="U1")])

        assert "Owner cannot be an accepter" in str(exc_info.value)

    def test_blood_request_single_accepter(self):
        with pytest.raises(ValidationError) as exc_info:
            make_request(accepters=[Acceptance(user_id="U2"), Acceptance(user_id="U3")])

        assert "single donor" in str(exc_info.value)

    def test_invalid_blood_type(self):
        with pytest.raises(ValidationError):
            make_request(details={"type": "blood", "blood_type": "Z+", "urgency_level": "high"})

    def test_document_uses_camel_case(self):
        """Storage documents use camelCase keys and plain enum values."""
        document = make_request().to_document()
        assert document["ownerId"] == "U1"
        assert document["details"]["bloodType"] == "A-"
        assert document["type"] == RequestType.BLOOD.value
        assert "owner_id" not in document

    def test_defaulted_enums_stored_as_plain_values(self):
        """Default enum members are dumped as their values."""
        document = make_request(accepters=[Acceptance(user_id="U2")]).to_document()
        assert type(document["status"]) is str
        assert document["status"] == "pending"
        assert type(document["accepters"][0]["status"]) is str

    def test_round_trip_from_document(self):
        request = make_request(accepters=[Acceptance(user_id="U2")])
        restored = ServiceRequest.model_validate(request.to_document())
        assert restored == request
        assert restored.is_accepter("U2")

    def test_ownership_helpers(self):
        request = make_request()
        assert request.is_owner("U1")
        assert not request.is_owner("U2")
        assert not request.is_owner(None)
        assert request.is_blood()
        assert request.is_pending()


class TestLocationModel:
    """Test Location validation."""

    def test_address_is_stripped(self):
        assert Location(address="  5 Elm Street ").address == "5 Elm Street"

    def test_blank_address_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            Location(address="   ")

        assert "Address cannot be empty" in str(exc_info.value)


class TestComplaintDetails:
    """Test complaint payload defaults."""

    def test_images_default_empty(self):
        details = ComplaintDetails(title="Pothole", description="Deep pothole", category="roads")
        assert details.images == []


class TestRequestPage:
    """Test page navigation fields."""

    def test_first_of_several_pages(self):
        page = RequestPage.build([], total=25, page=1, page_size=10)
        assert page.total_pages == 3
        assert page.has_next
        assert not page.has_prev

    def test_last_page(self):
        page = RequestPage.build([], total=25, page=3, page_size=10)
        assert not page.has_next
        assert page.has_prev

    def test_empty_listing(self):
        page = RequestPage.build([], total=0, page=1, page_size=10)
        assert page.total_pages == 0
        assert not page.has_next
        assert not page.has_prev
