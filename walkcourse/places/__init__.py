"""
Place retrieval.

Responsibilities:
- Hold the place datastore client (pandas-backed, built at startup).
- Classify places into activity buckets with an ordered rule table.
- Turn a resolved intent into a filtered, rating-ordered candidate list.
"""
