"""Trail journal media ingestion service.

Turns raw photo and video uploads into geotagged, playable media records
attached to journal entries.
"""

__all__: list[str] = []
