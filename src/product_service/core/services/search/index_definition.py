"""Index settings and mapping for the product search projection."""

from typing import Any

KEYWORD_SUFFIX = "keyword"

# Fields a caller may sort on in the projection
SORTABLE_FIELDS = ("name", "description", "price", "created_at", "updated_at", "deleted_at")

SEARCH_FIELDS = ("name", "description")


def index_settings(analyzer: str) -> dict[str, Any]:
    return {
        "settings": {
            "analysis": {
                "analyzer": {
                    analyzer: {
                        "type": "custom",
                        "tokenizer": "standard",
                        "filter": ["lowercase", "asciifolding"],
                    }
                }
            }
        }
    }


def _text(analyzer: str) -> dict[str, Any]:
    return {
        "type": "text",
        "analyzer": analyzer,
        "fields": {KEYWORD_SUFFIX: {"type": "keyword", "ignore_above": 256}},
    }


def _sortable(field_type: str) -> dict[str, Any]:
    # The sub-field repeats the parent type so ordering stays numeric or chronological
    return {"type": field_type, "fields": {KEYWORD_SUFFIX: {"type": field_type}}}


def index_mapping(analyzer: str) -> dict[str, Any]:
    """Every sortable field carries a ``keyword`` sub-field used for sorting."""
    return {
        "properties": {
            "id": {"type": "keyword"},
            "name": _text(analyzer),
            "description": _text(analyzer),
            "price": _sortable("double"),
            "thumbnail_id": {"type": "keyword"},
            "owner_id": {"type": "keyword"},
            "created_at": _sortable("date"),
            "updated_at": _sortable("date"),
            "deleted_at": _sortable("date"),
        }
    }
