"""
Match-history consistency checks for Ladderwatch.
Compares the locally ingested match history of a player against the Riot API
listing and the latest rank snapshot, and reports drift without correcting it.
"""
