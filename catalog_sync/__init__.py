"""Trading-card catalog sync: upstream card APIs -> per-game storage tables."""

__version__ = "0.3.0"
