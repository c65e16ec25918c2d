"""
Riot API access for Ladderwatch.
Regional routing, paginated match history, per-match/per-account lookups and
the Data Dragon reference cache, all on top of the resilient fetch client.
"""
