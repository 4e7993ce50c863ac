"""
URL-safe slug derivation and unique allocation for tenants.
"""

import re
import unicodedata
from typing import Optional

from ..db.db_tenant_models import Tenant
from ..exceptions import SlugGenerationError, ValidationError
from ..stores.interfaces import TenantStore
from ..utils.logger import get_logger

_NON_ALPHANUMERIC = re.compile(r"[^a-z0-9]+")

SLUG_MAX_LENGTH = Tenant.__table__.c.slug.type.length


def generate(name: str) -> str:
    """
    Derive a slug from a display name.

    Accents are folded ("São Paulo" -> "sao-paulo"), every run of other
    characters becomes a single hyphen and edge hyphens are trimmed. May
    return an empty string; callers must reject that.
    """
    folded = unicodedata.normalize("NFKD", name or "")
    ascii_only = "".join(ch for ch in folded if not unicodedata.combining(ch))
    return _NON_ALPHANUMERIC.sub("-", ascii_only.lower()).strip("-")


def fit(base: str, suffix: str = "", max_length: int = SLUG_MAX_LENGTH) -> str:
    """Cut ``base`` so ``base + suffix`` fits in ``max_length``, never ending on a hyphen."""
    return base[: max_length - len(suffix)].rstrip("-") + suffix


class SlugAllocator:
    """Finds a free slug by trying ``base``, ``base-1``, ``base-2``, ..."""

    def __init__(
        self,
        tenant_store: TenantStore,
        max_attempts: int = 1000,
        max_length: int = SLUG_MAX_LENGTH,
    ):
        self.tenant_store = tenant_store
        self.max_attempts = max_attempts
        self.max_length = max_length
        self.logger = get_logger()

    def generate(self, name: str) -> str:
        return generate(name)

    def allocate_unique(self, name: str, exclude_id: Optional[str] = None) -> str:
        """
        Allocate a slug for ``name`` that no other tenant uses.

        Long bases are shortened so every candidate, suffix included, fits
        the slug column. The check is best effort; the unique constraint on
        tenants.slug stays authoritative under concurrent creation.

        Args:
            name: Display name to derive the slug from
            exclude_id: Tenant being renamed, whose own slug does not count as taken

        Raises:
            ValidationError: If the name yields an empty slug
            SlugGenerationError: If no free slug is found within max_attempts
        """
        base = fit(generate(name), max_length=self.max_length)
        if not base:
            raise ValidationError(
                "Invalid church data",
                {"slug": "Could not derive a slug from the church name"},
                name=name,
            )

        candidate = base
        for attempt in range(1, self.max_attempts + 1):
            if not self.tenant_store.is_taken("slug", candidate, exclude_id=exclude_id):
                if candidate != base:
                    self.logger.debug(
                        "Slug suffixed", extra={"base_slug": base, "slug": candidate}
                    )
                return candidate
            candidate = fit(base, f"-{attempt}", self.max_length)

        raise SlugGenerationError(name, self.max_attempts, base_slug=base)
