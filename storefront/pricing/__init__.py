"""
Pricing Module
"""
from .store import PricingStore, within_band

__all__ = ["PricingStore", "within_band"]
