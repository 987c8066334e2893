"""Pricing - immutable quotes consumed by bidding and checkout"""

from design_pipeline.pricing.models import PricingQuote
from design_pipeline.pricing.repository import PricingQuoteRepository

__all__ = ["PricingQuote", "PricingQuoteRepository"]
