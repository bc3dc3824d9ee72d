"""Customer repository for the PDF pipeline.

This module contains the CustomerRepository class that reads customer
records for the detector and persists learned identification patterns.
"""

from typing import Any, List, Optional

from sqlalchemy import select

from ..models import Customer
from ..exceptions import CustomerNotFoundError
from .database_manager import DatabaseManager

__all__ = ["CustomerRepository"]


class CustomerRepository:
    """Repository pattern implementation for customer records.

    Attributes:
        db_manager: DatabaseManager instance for database operations
    """

    def __init__(self, db_manager: DatabaseManager) -> None:
        self.db_manager: DatabaseManager = db_manager

    def add_customer(self, name: str, identifier_patterns: Any = None,
                     is_active: bool = True, customer_id: Optional[str] = None) -> Customer:
        """Create a customer record.

        Args:
            name: Customer display name
            identifier_patterns: Pattern list or flat key/value object
            is_active: Whether the customer takes part in detection
            customer_id: Optional explicit id

        Returns:
            The persisted Customer

        Raises:
            DatabaseError: If database operation fails
        """
        with self.db_manager.session_scope("save") as session:
            customer = Customer(
                name=name,
                identifier_patterns=identifier_patterns if identifier_patterns is not None else [],
                is_active=is_active,
            )
            if customer_id:
                customer.id = customer_id
            session.add(customer)
            session.flush()
            return customer

    def list_active(self) -> List[Customer]:
        """Return all active customers in creation order."""
        with self.db_manager.session_scope("query") as session:
            stmt = (
                select(Customer)
                .where(Customer.is_active.is_(True))
                .order_by(Customer.created_at, Customer.id)
            )
            return list(session.scalars(stmt))

    def get(self, customer_id: str) -> Optional[Customer]:
        with self.db_manager.session_scope("query") as session:
            return session.get(Customer, customer_id)

    def update_identifier_patterns(self, customer_id: str, patterns: Any) -> None:
        """Replace a customer's stored identification patterns.

        Args:
            customer_id: Customer to update
            patterns: New pattern list in storage format

        Raises:
            CustomerNotFoundError: If the customer does not exist
            DatabaseError: If database operation fails
        """
        with self.db_manager.session_scope("update") as session:
            customer = session.get(Customer, customer_id)
            if customer is None:
                raise CustomerNotFoundError(f"Customer not found: {customer_id}")
            customer.identifier_patterns = patterns
