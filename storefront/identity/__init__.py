"""
Identity Module
"""
from .registry import IdentityRegistry, hash_password, verify_password
from .migrator import IdentityMigrator, IdReassignment, MigrationReport

__all__ = [
    "IdentityRegistry",
    "IdentityMigrator",
    "IdReassignment",
    "MigrationReport",
    "hash_password",
    "verify_password",
]
