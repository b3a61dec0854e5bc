"""SQLite-backed storage for taskmgr.

Callers should go through RepositoryComposite; the individual repositories
share its connection and IntegrityAuthority and are exposed as attributes.
"""

from taskmgr.storage.composite import RepositoryComposite
from taskmgr.storage.database import Database
from taskmgr.storage.integrity import IntegrityAuthority

__all__ = [
    "RepositoryComposite",
    "Database",
    "IntegrityAuthority",
]
