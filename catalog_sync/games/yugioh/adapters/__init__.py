"""YGOPRODeck-backed Yu-Gi-Oh! adapters."""
