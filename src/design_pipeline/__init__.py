"""
Design Pipeline - event log and approval-step/bid state engine

Tracks a design from checkout through technical design, sampling and
production. Every change is an append-only design event; bid state is
derived from those events on every read and approval steps cascade through
an explicit, ordered list of listeners.

Fun fact: a bid is never stored as "expired". It simply is expired once more
than 24 hours have passed, no cron job required.
"""

from design_pipeline.pipeline import Pipeline

__version__ = "0.1.0"
__all__ = ["Pipeline", "__version__"]
