"""
Cart Module
"""
from .store import CartIdGenerator, CartStore
from .session import CartSession

__all__ = ["CartIdGenerator", "CartStore", "CartSession"]
