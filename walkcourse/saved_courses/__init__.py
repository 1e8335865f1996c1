"""
Saved walking courses.

Responsibilities:
- Persist courses users chose to keep, keyed by a hash of their stops.
- Offer well-matching saved courses again for similar intents.
- Track how often each saved course is reused.
"""
