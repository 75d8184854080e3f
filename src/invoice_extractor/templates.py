"""Map invoice categories to the service's pre-registered templates."""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType

from invoice_extractor import constants
from invoice_extractor.core.types import InvoiceCategory, TemplateId
from invoice_extractor.exceptions import ConfigurationError, UnsupportedCategoryError


class TemplateResolver:
    """Pure lookup from category to template identifier.

    The table is validated once at construction: every ``InvoiceCategory``
    must map to a non-empty identifier. A gap there is a configuration
    error, while an unknown category passed to ``resolve`` is a caller error.
    """

    def __init__(self, templates: Mapping[str, str] | None = None):
        table = dict(constants.DEFAULT_TEMPLATES if templates is None else templates)
        normalized = {
            str(k).strip().lower(): str(v).strip() for k, v in table.items()
        }
        missing = [
            c for c in InvoiceCategory.values() if not normalized.get(c)
        ]
        if missing:
            raise ConfigurationError(
                f"No extraction template configured for: {', '.join(missing)}"
            )
        self._templates: Mapping[str, TemplateId] = MappingProxyType(
            {c: normalized[c] for c in InvoiceCategory.values()}
        )

    @property
    def supported_categories(self) -> tuple[str, ...]:
        return tuple(self._templates)

    def resolve(self, category: InvoiceCategory | str) -> TemplateId:
        """Return the template identifier for ``category``.

        Raises:
            UnsupportedCategoryError: If ``category`` is not one of the
                supported invoice categories.
        """
        if isinstance(category, InvoiceCategory):
            key = category.value
        elif isinstance(category, str):
            key = category.strip().lower()
        else:
            raise UnsupportedCategoryError(category, self.supported_categories)

        template_id = self._templates.get(key)
        if template_id is None:
            raise UnsupportedCategoryError(category, self.supported_categories)
        return template_id
