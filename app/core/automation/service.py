"""Automation service for rule management."""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.automation.rule_parser import RuleParser
from app.models.automation import AutomationLog, AutomationRule
from app.repositories.automation_repository import AutomationRepository

logger = logging.getLogger(__name__)

NULLABLE_FIELDS = {"description", "trigger_value", "trigger_config"}


def _rule_definition(rule: AutomationRule) -> dict[str, Any]:
    return {
        "name": rule.name,
        "description": rule.description,
        "is_active": rule.is_active,
        "trigger_type": rule.trigger_type,
        "trigger_value": rule.trigger_value,
        "trigger_config": rule.trigger_config,
        "actions": rule.actions,
    }


class AutomationService:
    """Service for automation rule management."""

    def __init__(self, db: Session):
        """Initialize service with database session."""
        self.db = db
        self.repository = AutomationRepository(db)

    def create_rule(self, tenant_id: UUID, definition: dict[str, Any]) -> AutomationRule:
        """Create a new automation rule.

        Args:
            tenant_id: Tenant ID
            definition: Rule definition (name, trigger_type, trigger_value,
                trigger_config, actions, description, is_active)

        Returns:
            Created rule

        Raises:
            RuleParseError: If the definition is invalid
        """
        rule_data = RuleParser.parse(definition)
        rule = self.repository.create_rule({**rule_data, "tenant_id": tenant_id})
        logger.info(f"Created rule '{rule.name}' (ID: {rule.id}) for tenant {tenant_id}")
        return rule

    def get_rule(self, rule_id: UUID, tenant_id: UUID) -> AutomationRule | None:
        """Get a rule by ID.

        Args:
            rule_id: Rule ID
            tenant_id: Tenant ID

        Returns:
            Rule or None if not found
        """
        return self.repository.get_rule_by_id(rule_id, tenant_id)

    def get_all_rules(
        self, tenant_id: UUID, active_only: bool = False, skip: int = 0, limit: int = 100
    ) -> list[AutomationRule]:
        """Get all rules for a tenant.

        Args:
            tenant_id: Tenant ID
            active_only: Only return active rules
            skip: Pagination offset
            limit: Pagination limit

        Returns:
            List of rules
        """
        return self.repository.get_all_rules(tenant_id, active_only, skip, limit)

    def count_rules(self, tenant_id: UUID, active_only: bool = False) -> int:
        """Count rules for a tenant."""
        return self.repository.count_all_rules(tenant_id, active_only)

    def update_rule(
        self, rule_id: UUID, tenant_id: UUID, changes: dict[str, Any]
    ) -> AutomationRule | None:
        """Update a rule.

        The stored definition is merged with the changes and the result is
        validated as a whole.

        Args:
            rule_id: Rule ID
            tenant_id: Tenant ID
            changes: Fields to change; None clears a nullable field and is
                ignored for the others

        Returns:
            Updated rule or None if not found

        Raises:
            RuleParseError: If the resulting definition is invalid
        """
        rule = self.repository.get_rule_by_id(rule_id, tenant_id)
        if not rule:
            return None

        definition = _rule_definition(rule)
        definition.update(
            {
                key: value
                for key, value in changes.items()
                if value is not None or key in NULLABLE_FIELDS
            }
        )
        update_data = RuleParser.parse(definition)

        updated_rule = self.repository.update_rule(rule_id, tenant_id, update_data)
        logger.info(f"Updated rule {rule_id} for tenant {tenant_id}")
        return updated_rule

    def toggle_rule(self, rule_id: UUID, tenant_id: UUID) -> AutomationRule | None:
        """Flip a rule between active and inactive.

        Returns:
            Updated rule or None if not found
        """
        rule = self.repository.get_rule_by_id(rule_id, tenant_id)
        if not rule:
            return None
        updated_rule = self.repository.update_rule(
            rule_id, tenant_id, {"is_active": not rule.is_active}
        )
        logger.info(
            f"Rule {rule_id} for tenant {tenant_id} is now "
            f"{'active' if updated_rule.is_active else 'inactive'}"
        )
        return updated_rule

    def delete_rule(self, rule_id: UUID, tenant_id: UUID) -> bool:
        """Delete a rule.

        Args:
            rule_id: Rule ID
            tenant_id: Tenant ID

        Returns:
            True if deleted, False if not found
        """
        result = self.repository.delete_rule(rule_id, tenant_id)
        if result:
            logger.info(f"Deleted rule {rule_id} for tenant {tenant_id}")
        return result

    def get_logs(
        self, rule_id: UUID, tenant_id: UUID, skip: int = 0, limit: int = 100
    ) -> list[AutomationLog]:
        """Get execution history for a rule.

        Args:
            rule_id: Rule ID
            tenant_id: Tenant ID
            skip: Pagination offset
            limit: Pagination limit

        Returns:
            List of log entries, newest first
        """
        return self.repository.get_logs_by_rule(rule_id, tenant_id, skip, limit)

    def count_logs(self, rule_id: UUID, tenant_id: UUID) -> int:
        """Count execution history entries for a rule."""
        return self.repository.count_logs_by_rule(rule_id, tenant_id)
