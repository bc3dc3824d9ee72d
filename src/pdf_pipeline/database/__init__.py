"""Database module for the PDF pipeline.

This module contains database management classes including connection
management, session creation, and the repositories the pipeline core
reads customers and templates from and records processing results in.
"""

from .database_manager import DatabaseManager
from .customer_repository import CustomerRepository
from .template_repository import TemplateRepository
from .document_repository import DocumentRepository

__all__ = ["DatabaseManager", "CustomerRepository", "TemplateRepository", "DocumentRepository"]
