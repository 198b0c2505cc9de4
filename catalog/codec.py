"""
Conversion between stored attribute pairs and the client-facing mapping.

The store keeps dynamic attributes as ``[{"name": ..., "value": ...}, ...]``;
clients only ever see ``{"name": value, ...}``. ``decode_fields(encode_fields(m))``
returns ``m``; the reverse direction does not promise pair order, and a repeated
name in stored pairs keeps its last value.
"""

from collections.abc import Iterable, Mapping
from typing import Any

from models.catalog import AttributePair, ProductView


def encode_fields(fields: Mapping[str, Any]) -> list[dict[str, Any]]:
    """Mapping -> list of name/value pairs, in the mapping's iteration order."""
    return [{"name": name, "value": value} for name, value in fields.items()]


def decode_fields(pairs: Iterable[Mapping[str, Any] | AttributePair] | None) -> dict[str, Any]:
    """List of name/value pairs -> mapping."""
    fields: dict[str, Any] = {}
    for pair in pairs or ():
        if isinstance(pair, AttributePair):
            fields[pair.name] = pair.value
        else:
            fields[pair["name"]] = pair.get("value")
    return fields


def to_product_view(document: Mapping[str, Any]) -> ProductView:
    """Shape a stored product document for clients."""
    shaped = {key: value for key, value in document.items() if key != "attribute_values"}
    shaped["fields"] = decode_fields(document.get("attribute_values"))
    return ProductView.model_validate(shaped)
