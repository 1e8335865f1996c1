"""
Recommendation engine.

Responsibilities:
- Score retrieved places against the resolved intent with weighted heuristics.
- Compose multi-stop walking courses with a balanced activity mix.
- Re-rank on free-text user feedback and merge in reused saved courses.
- Return the response envelope ready for API serialisation.
"""
