"""
Place data ingestion.

Responsibilities:
- Read a raw place export (CSV or JSON records).
- Normalize it into the canonical place schema used by ``PlaceStore``.
- Persist the processed dataset locally.
"""
