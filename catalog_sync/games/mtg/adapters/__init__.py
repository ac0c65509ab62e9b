"""Scryfall-backed MTG adapters."""
