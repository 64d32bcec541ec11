"""
Regatta backend: round-robin and knockout scheduling across boat sets,
race results, and per-league leaderboards with tie-breaks.
"""
