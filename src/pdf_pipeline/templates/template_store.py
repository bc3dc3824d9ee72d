"""In-memory template cache.

This module contains the TemplateStore class that holds active templates
indexed by id and by customer. The store is refreshed explicitly from
the template repository and is otherwise read-only.
"""

import logging
import threading
from typing import Any, Dict, Iterable, List, Optional

from ..models import Template

__all__ = ["TemplateStore"]

logger = logging.getLogger(__name__)


class TemplateStore:
    """Read-mostly cache of active templates.

    Attributes:
        repository: Template repository providing list_active(), or None
            for a store filled through load()
    """

    def __init__(self, repository: Any = None) -> None:
        self.repository = repository
        self._by_id: Dict[str, Template] = {}
        self._by_customer: Dict[str, List[Template]] = {}
        self._lock = threading.Lock()

    def load(self, templates: Iterable[Template]) -> None:
        """Replace the cached templates, keeping the given order per customer."""
        by_id: Dict[str, Template] = {}
        by_customer: Dict[str, List[Template]] = {}
        for template in templates:
            if not template.is_active:
                continue
            by_id[template.id] = template
            by_customer.setdefault(template.customer_id, []).append(template)

        with self._lock:
            self._by_id = by_id
            self._by_customer = by_customer

    def reload(self) -> int:
        """Reload active templates from the repository.

        Returns:
            Number of templates loaded

        Raises:
            DatabaseError: If templates cannot be loaded
        """
        if self.repository is None:
            return len(self._by_id)
        self.load(self.repository.list_active())
        logger.info("Loaded %d templates for %d customers", len(self._by_id), len(self._by_customer))
        return len(self._by_id)

    def for_customer(self, customer_id: str) -> List[Template]:
        return list(self._by_customer.get(customer_id, []))

    def get(self, template_id: str) -> Optional[Template]:
        return self._by_id.get(template_id)

    def stats(self) -> Dict[str, Any]:
        """Return the template count overall and per customer id."""
        by_id, by_customer = self._by_id, self._by_customer
        return {
            "total_templates": len(by_id),
            "customer_templates": {
                customer_id: len(templates) for customer_id, templates in by_customer.items()
            },
        }
