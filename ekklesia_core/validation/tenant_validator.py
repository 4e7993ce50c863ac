"""
Field validation and business-rule predicates for tenants.

Field validation collects every failing field into one ValidationError so a
client can render all of them at once. Business-rule predicates take
pre-computed booleans, raise BusinessRuleError on the first violated rule and
never touch the store.
"""

import re
from re import Pattern
from typing import Any, Dict, Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import AnyHttpUrl, BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from ..config import SettingsPolicy
from ..constants import BusinessRuleReason
from ..db.db_tenant_models import Tenant, TenantSettings
from ..exceptions import BusinessRuleError, ValidationError

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 100

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
SLUG_PATTERN = re.compile(r"^[a-z0-9]+(?:-+[a-z0-9]+)*$")
PHONE_SEPARATORS = re.compile(r"[\s\-()]")

TENANT_OPTIONAL_FIELDS = (
    "phone",
    "address",
    "city",
    "state",
    "postal_code",
    "website",
    "logo_url",
    "tax_id",
)
SETTINGS_FIELDS = (
    "timezone",
    "currency",
    "fiscal_year",
    "enabled_modules",
    "enable_ocr",
    "ocr_api_key",
    "bank_name",
    "account_number",
)

# Longest value each string column accepts
TENANT_MAX_LENGTHS = {
    field: Tenant.__table__.c[field].type.length
    for field in ("email", "slug") + TENANT_OPTIONAL_FIELDS
}
SETTINGS_MAX_LENGTHS = {
    field: TenantSettings.__table__.c[field].type.length
    for field in ("ocr_api_key", "bank_name", "account_number")
}

_http_url = TypeAdapter(AnyHttpUrl)


class FormatRules(BaseModel):
    """
    Regional format predicates. The defaults follow Brazilian conventions
    (CEP postal codes, CNPJ tax ids); swap the patterns for another locale.
    """

    postal_code: Pattern[str] = Field(default=re.compile(r"^\d{5}-?\d{3}$"))
    phone: Pattern[str] = Field(default=re.compile(r"^\+?[1-9]\d{0,15}$"))
    tax_id: Pattern[str] = Field(default=re.compile(r"^\d{2}\.\d{3}\.\d{3}/\d{4}-\d{2}$|^\d{14}$"))

    model_config = ConfigDict(frozen=True)

    def is_valid_postal_code(self, value: str) -> bool:
        return bool(self.postal_code.match(value))

    def is_valid_phone(self, value: str) -> bool:
        return bool(self.phone.match(PHONE_SEPARATORS.sub("", value)))

    def is_valid_tax_id(self, value: str) -> bool:
        return bool(self.tax_id.match(value))


def is_valid_email(value: str) -> bool:
    return bool(EMAIL_PATTERN.match(value))


def is_valid_slug(value: str) -> bool:
    return bool(SLUG_PATTERN.match(value))


def is_valid_url(value: str) -> bool:
    try:
        _http_url.validate_python(value)
    except PydanticValidationError:
        return False
    return True


def is_valid_timezone(value: str) -> bool:
    if not value:
        return False
    try:
        ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        return False
    return True


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _too_long(value: str, limit: int) -> Optional[str]:
    if len(value.strip()) > limit:
        return f"Must not exceed {limit} characters"
    return None


class TenantValidator:
    """
    Validates tenant and settings payloads against format rules and policy.

    Payloads are plain mappings; only keys that are present are considered
    for partial updates.
    """

    def __init__(
        self,
        rules: Optional[FormatRules] = None,
        settings_policy: Optional[SettingsPolicy] = None,
    ):
        self.rules = rules or FormatRules()
        self.settings_policy = settings_policy or SettingsPolicy()

    # ==================== FIELD VALIDATION ====================

    def validate_create(self, data: Mapping[str, Any]) -> None:
        """
        Validate a tenant creation payload.

        Raises:
            ValidationError: With every failing field in ``field_errors``
        """
        errors: Dict[str, str] = {}

        name_error = self._check_name(data.get("name"), required_message="Church name is required")
        if name_error:
            errors["name"] = name_error

        email_error = self._check_email(
            data.get("email"), required_message="Church email is required"
        )
        if email_error:
            errors["email"] = email_error

        errors.update(self._check_optional_fields(data))

        if errors:
            raise ValidationError("Invalid church data", errors)

    def validate_update(self, data: Mapping[str, Any]) -> None:
        """
        Validate a partial tenant update. Absent keys are left alone; a
        present but empty name or email is an error.

        Raises:
            ValidationError: With every failing field in ``field_errors``
        """
        errors: Dict[str, str] = {}

        if "name" in data:
            name_error = self._check_name(
                data["name"], required_message="Church name cannot be empty"
            )
            if name_error:
                errors["name"] = name_error

        if "email" in data:
            email_error = self._check_email(
                data["email"], required_message="Church email cannot be empty"
            )
            if email_error:
                errors["email"] = email_error

        if "is_active" in data:
            errors["is_active"] = (
                "Status cannot be changed through update; use activate or deactivate"
            )

        errors.update(self._check_optional_fields(data))

        if errors:
            raise ValidationError("Invalid church update data", errors)

    def validate_settings(self, data: Mapping[str, Any]) -> None:
        """
        Validate a partial settings payload.

        Raises:
            ValidationError: With every failing field in ``field_errors``
        """
        errors: Dict[str, str] = {}
        policy = self.settings_policy

        for key in data:
            if key not in SETTINGS_FIELDS:
                errors[key] = "Unknown settings field"

        timezone = data.get("timezone")
        if "timezone" in data and not (isinstance(timezone, str) and is_valid_timezone(timezone)):
            errors["timezone"] = "Invalid timezone format"

        if "currency" in data and data["currency"] not in policy.supported_currencies:
            errors["currency"] = (
                f"Invalid currency code (supported: {', '.join(policy.supported_currencies)})"
            )

        if "fiscal_year" in data and data["fiscal_year"] not in policy.fiscal_years:
            allowed = " or ".join(f'"{fy}"' for fy in policy.fiscal_years)
            errors["fiscal_year"] = f"Invalid fiscal year format (must be {allowed})"

        if "enabled_modules" in data:
            modules_error = self._check_modules(data["enabled_modules"])
            if modules_error:
                errors["enabled_modules"] = modules_error

        if "enable_ocr" in data and not isinstance(data["enable_ocr"], bool):
            errors["enable_ocr"] = "Enable OCR must be a boolean value"

        for field, label in (
            ("ocr_api_key", "OCR API key"),
            ("bank_name", "Bank name"),
            ("account_number", "Account number"),
        ):
            value = data.get(field)
            if value is None:
                continue
            if not isinstance(value, str):
                errors[field] = f"{label} must be a string"
            elif len(value) > SETTINGS_MAX_LENGTHS[field]:
                errors[field] = f"{label} must not exceed {SETTINGS_MAX_LENGTHS[field]} characters"

        if errors:
            raise ValidationError("Invalid church settings", errors)

    def _check_name(self, value: Any, required_message: str) -> Optional[str]:
        if _is_blank(value) or not isinstance(value, str):
            return required_message
        length = len(value.strip())
        if length < NAME_MIN_LENGTH:
            return f"Church name must be at least {NAME_MIN_LENGTH} characters long"
        if length > NAME_MAX_LENGTH:
            return f"Church name must not exceed {NAME_MAX_LENGTH} characters"
        return None

    def _check_email(self, value: Any, required_message: str) -> Optional[str]:
        if _is_blank(value) or not isinstance(value, str):
            return required_message
        too_long = _too_long(value, TENANT_MAX_LENGTHS["email"])
        if too_long:
            return too_long
        if not is_valid_email(value.strip()):
            return "Invalid email format"
        return None

    def _check_optional_fields(self, data: Mapping[str, Any]) -> Dict[str, str]:
        errors: Dict[str, str] = {}

        for field in ("slug",) + TENANT_OPTIONAL_FIELDS:
            value = data.get(field)
            if _is_blank(value):
                continue
            if not isinstance(value, str):
                errors[field] = "Must be a string"
                continue
            too_long = _too_long(value, TENANT_MAX_LENGTHS[field])
            if too_long:
                errors[field] = too_long

        def present(field: str) -> Optional[str]:
            value = data.get(field)
            if field in errors or _is_blank(value):
                return None
            return value.strip()

        slug = present("slug")
        if slug and not is_valid_slug(slug):
            errors["slug"] = "Slug must contain only lowercase letters, numbers, and hyphens"

        phone = present("phone")
        if phone and not self.rules.is_valid_phone(phone):
            errors["phone"] = "Invalid phone number format"

        website = present("website")
        if website and not is_valid_url(website):
            errors["website"] = "Invalid website URL format"

        logo_url = present("logo_url")
        if logo_url and not is_valid_url(logo_url):
            errors["logo_url"] = "Invalid logo URL format"

        tax_id = present("tax_id")
        if tax_id and not self.rules.is_valid_tax_id(tax_id):
            errors["tax_id"] = "Invalid tax ID format"

        postal_code = present("postal_code")
        if postal_code and not self.rules.is_valid_postal_code(postal_code):
            errors["postal_code"] = "Invalid postal code format"

        return errors

    @staticmethod
    def _check_modules(value: Any) -> Optional[str]:
        if not isinstance(value, (list, tuple)):
            return "Enabled modules must be a list"
        if any(not isinstance(module, str) or not module.strip() for module in value):
            return "Enabled modules must be non-empty strings"
        return None

    # ==================== BUSINESS RULES ====================

    @staticmethod
    def can_delete_tenant(
        has_active_privileged_accounts: bool, is_last_active_tenant: bool
    ) -> bool:
        """
        Raises:
            BusinessRuleError: If privileged accounts remain or this is the last active tenant
        """
        if has_active_privileged_accounts:
            raise BusinessRuleError(
                "Cannot delete church with associated super admin users",
                BusinessRuleReason.PRIVILEGED_ACCOUNTS_EXIST.value,
            )
        if is_last_active_tenant:
            raise BusinessRuleError(
                "Cannot delete the last active church in the system",
                BusinessRuleReason.LAST_ACTIVE_TENANT.value,
            )
        return True

    @staticmethod
    def can_deactivate_tenant(is_last_active_tenant: bool) -> bool:
        if is_last_active_tenant:
            raise BusinessRuleError(
                "Cannot deactivate the last active church in the system",
                BusinessRuleReason.LAST_ACTIVE_TENANT.value,
            )
        return True

    @staticmethod
    def can_transfer_accounts(
        source_exists: bool, target_exists: bool, target_active: bool
    ) -> bool:
        """
        Check transfer preconditions in a fixed order: target missing, source
        missing, target inactive. Exactly one failure is reported.
        """
        if not target_exists:
            raise BusinessRuleError(
                "Target church does not exist",
                BusinessRuleReason.TARGET_TENANT_NOT_FOUND.value,
            )
        if not source_exists:
            raise BusinessRuleError(
                "Source church does not exist",
                BusinessRuleReason.SOURCE_TENANT_NOT_FOUND.value,
            )
        if not target_active:
            raise BusinessRuleError(
                "Cannot transfer users to an inactive church",
                BusinessRuleReason.TARGET_TENANT_INACTIVE.value,
            )
        return True
