"""Tenant field validation and business-rule predicates."""

from .tenant_validator import FormatRules, TenantValidator

__all__ = ["FormatRules", "TenantValidator"]
