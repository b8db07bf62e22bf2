"""
Unit tests for the HTTP schema base and response envelope.
"""

from datetime import datetime, timedelta, timezone
from typing import List

from core.schema_base import ApiResponse, HTTPSchemaModel, PaginationMeta, serialize_datetime, to_camel


class Sample(HTTPSchemaModel):
    sla_due_date: datetime
    request_number: str


def test_to_camel():
    assert to_camel("sla_due_date") == "slaDueDate"
    assert to_camel("id") == "id"


def test_serialize_datetime_naive_and_aware():
    assert serialize_datetime(datetime(2025, 1, 2, 3, 4, 5)) == "2025-01-02T03:04:05Z"

    aware = datetime(2025, 1, 2, 5, 4, 5, tzinfo=timezone(timedelta(hours=2)))
    assert serialize_datetime(aware) == "2025-01-02T03:04:05Z"
    assert serialize_datetime(None) is None


def test_model_dumps_camel_case_with_z_suffix():
    sample = Sample(sla_due_date=datetime(2025, 3, 14, 9, 30), request_number="REQ250314-001")

    assert sample.model_dump(by_alias=True) == {
        "slaDueDate": "2025-03-14T09:30:00Z",
        "requestNumber": "REQ250314-001",
    }


def test_accepts_camel_and_snake_input():
    assert Sample(slaDueDate=datetime(2025, 1, 1), requestNumber="A").request_number == "A"
    assert Sample(sla_due_date=datetime(2025, 1, 1), request_number="B").request_number == "B"


def test_pagination_meta_total_pages():
    assert PaginationMeta.build(page=1, limit=20, total=41).total_pages == 3
    assert PaginationMeta.build(page=1, limit=20, total=40).total_pages == 2
    assert PaginationMeta.build(page=1, limit=20, total=0).total_pages == 0


def test_envelope():
    envelope = ApiResponse[List[Sample]](
        data=[Sample(sla_due_date=datetime(2025, 3, 14), request_number="R")],
        meta=PaginationMeta.build(1, 10, 1),
    )
    dumped = envelope.model_dump(by_alias=True)

    assert dumped["success"] is True
    assert dumped["data"][0]["slaDueDate"] == "2025-03-14T00:00:00Z"
    assert dumped["meta"] == {"page": 1, "limit": 10, "total": 1, "totalPages": 1}
