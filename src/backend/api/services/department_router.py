"""
Keyword router that picks a department for requests logged without a product.

Rules are checked in order; the first rule with a keyword contained in the
lower-cased issue description wins. When none matches, the default rule
applies. The rule table defaults to RoutingSettings and can be injected.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import RoutingSettings, settings
from db import Department

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DepartmentRule:
    keywords: Tuple[str, ...]
    department_name: str
    fallback_department_id: int

    def matches(self, text: str) -> bool:
        return any(keyword in text for keyword in self.keywords)


class DepartmentRouter:
    """Ordered keyword rules mapping an issue description to a department."""

    def __init__(
        self,
        rules: Optional[Sequence[DepartmentRule]] = None,
        default_rule: Optional[DepartmentRule] = None,
    ):
        if rules is None or default_rule is None:
            configured_rules, configured_default = self.rules_from_settings(settings.routing)
            rules = configured_rules if rules is None else rules
            default_rule = configured_default if default_rule is None else default_rule

        self.rules = list(rules)
        self.default_rule = default_rule

    @staticmethod
    def rules_from_settings(routing: RoutingSettings) -> Tuple[list, DepartmentRule]:
        rules = [
            DepartmentRule(
                keywords=tuple(keyword.lower() for keyword in rule.keywords),
                department_name=rule.department_name,
                fallback_department_id=rule.fallback_department_id,
            )
            for rule in routing.rules
        ]
        default_rule = DepartmentRule(
            keywords=(),
            department_name=routing.default_department,
            fallback_department_id=routing.default_department_id,
        )
        return rules, default_rule

    def match(self, issue_description: str) -> DepartmentRule:
        """Return the first rule matching the description, or the default rule."""
        text = (issue_description or "").lower()
        for rule in self.rules:
            if rule.matches(text):
                return rule
        return self.default_rule

    async def resolve(self, db: AsyncSession, issue_description: str) -> int:
        """
        Resolve the department id for an issue description.

        The matched rule's department is looked up by name; when it is not in
        the store the rule's fallback id is used.
        """
        rule = self.match(issue_description)
        result = await db.execute(
            select(Department.id).where(Department.name == rule.department_name)
        )
        department_id = result.scalar_one_or_none()

        if department_id is None:
            logger.warning(
                f"Department '{rule.department_name}' not found, "
                f"falling back to id {rule.fallback_department_id}"
            )
            return rule.fallback_department_id

        logger.debug(f"Routed issue to department '{rule.department_name}' ({department_id})")
        return department_id
