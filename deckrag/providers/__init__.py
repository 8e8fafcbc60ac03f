"""Concrete adapters for the interfaces in ``deckrag/interfaces/``."""
