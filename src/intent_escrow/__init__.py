"""Intent Escrow — lifecycle bookkeeping for client/freelancer work agreements."""

__version__ = "0.1.0"
