"""
Unit tests for keyword-based department routing.
"""

import pytest

from api.services.department_router import DepartmentRouter, DepartmentRule
from core.config import DepartmentRuleConfig, RoutingSettings


@pytest.fixture
def router() -> DepartmentRouter:
    return DepartmentRouter(*DepartmentRouter.rules_from_settings(RoutingSettings()))


@pytest.mark.parametrize(
    "description, department",
    [
        ("AC not cooling, air conditioner leaks water", "LG Maintenance"),
        ("Refrigerator makes noise", "LG Maintenance"),
        ("Solar panel output dropped", "Solar Energy"),
        ("WiFi keeps disconnecting", "TP-Link"),
        ("TP-Link router reboots", "TP-Link"),
        ("Epson printer paper jam", "Epson"),
        ("Something is broken", "LG Maintenance"),
        ("", "LG Maintenance"),
    ],
)
def test_default_table(router, description, department):
    assert router.match(description).department_name == department


def test_first_matching_rule_wins(router):
    # "lg" (rule 1) and "router" (rule 3) both match
    assert router.match("LG router").department_name == "LG Maintenance"


def test_injected_rules_replace_the_table():
    custom = DepartmentRouter(
        rules=[DepartmentRule(("camera",), "CCTV", 9)],
        default_rule=DepartmentRule((), "General", 7),
    )

    assert custom.match("Camera offline").department_name == "CCTV"
    assert custom.match("Solar panel").department_name == "General"


def test_rules_from_settings_lowercases_keywords():
    routing = RoutingSettings(
        rules=[DepartmentRuleConfig(keywords=["Inverter"], department_name="Solar Energy", fallback_department_id=2)],
        default_department="Epson",
        default_department_id=4,
    )
    rules, default_rule = DepartmentRouter.rules_from_settings(routing)

    assert rules[0].keywords == ("inverter",)
    assert default_rule.department_name == "Epson"
    assert default_rule.fallback_department_id == 4


@pytest.mark.asyncio
async def test_resolve_looks_up_department_by_name(db_session, departments, router):
    department_id = await router.resolve(db_session, "Solar panel cracked")

    assert department_id == departments["Solar Energy"].id


@pytest.mark.asyncio
async def test_resolve_falls_back_to_rule_id(db_session):
    router = DepartmentRouter(rules=[], default_rule=DepartmentRule((), "Missing Department", 42))

    assert await router.resolve(db_session, "anything") == 42
