"""
Unit tests for SLA due-date calculation.

Windows: 168 h under warranty, 240 h out of warranty, plus 48 h on site.
"""

from datetime import datetime, timedelta

import pytest

from api.services.sla_service import calculate_sla_due_date, sla_window_hours
from db import ExecutionMethod, WarrantyStatus, utc_now

START = datetime(2025, 3, 14, 9, 30)


@pytest.mark.parametrize(
    "warranty_status, execution_method, hours",
    [
        (WarrantyStatus.UNDER_WARRANTY, ExecutionMethod.WORKSHOP, 168),
        (WarrantyStatus.UNDER_WARRANTY, ExecutionMethod.ON_SITE, 216),
        (WarrantyStatus.OUT_OF_WARRANTY, ExecutionMethod.WORKSHOP, 240),
        (WarrantyStatus.OUT_OF_WARRANTY, ExecutionMethod.ON_SITE, 288),
    ],
)
def test_due_date_offsets(warranty_status, execution_method, hours):
    assert sla_window_hours(warranty_status, execution_method) == hours
    assert calculate_sla_due_date(warranty_status, execution_method, START) == START + timedelta(hours=hours)


def test_accepts_raw_enum_values():
    due = calculate_sla_due_date("UNDER_WARRANTY", "ON_SITE", START)
    assert due == START + timedelta(hours=216)


def test_defaults_to_now():
    before = utc_now()
    due = calculate_sla_due_date(WarrantyStatus.OUT_OF_WARRANTY, ExecutionMethod.WORKSHOP)
    after = utc_now()

    assert before + timedelta(hours=240) <= due <= after + timedelta(hours=240)


def test_unknown_warranty_status_is_rejected():
    with pytest.raises(ValueError):
        calculate_sla_due_date("EXPIRED", ExecutionMethod.WORKSHOP, START)
