"""pokemontcg.io-backed Pokémon adapters."""
