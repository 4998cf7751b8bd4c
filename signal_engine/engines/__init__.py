"""Pipeline stages of the market-structure signal engine."""
