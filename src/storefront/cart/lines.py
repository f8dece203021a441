"""Cart line kinds and the custom-design payload carried by design lines."""

import json
from enum import Enum

from protean.exceptions import ValidationError


class CartLineType(Enum):
    ITEM = "item"
    COLLECTION = "collection"
    CUSTOM_DESIGN = "customDesign"
    SUGGESTED_ITEM = "suggestedItem"


_TRANSFORM_KEYS = ("x", "y", "scale", "rotation")


def normalize_custom_design(payload: dict | None) -> str | None:
    """Validate a custom-design payload and return it as JSON text."""
    if payload is None:
        return None

    errors = {}
    for key in ("design_image_url", "phone_model"):
        if not payload.get(key):
            errors[key] = [f"{key} is required for a custom design"]

    transform = payload.get("transform") or {}
    normalized_transform = {}
    for key in _TRANSFORM_KEYS:
        value = transform.get(key, 1 if key == "scale" else 0)
        if not isinstance(value, (int, float)):
            errors[f"transform.{key}"] = ["must be a number"]
        else:
            normalized_transform[key] = value

    if errors:
        raise ValidationError(errors)

    return json.dumps(
        {
            "design_image_url": payload["design_image_url"],
            "original_image_url": payload.get("original_image_url"),
            "phone_model": payload["phone_model"],
            "transform": normalized_transform,
        }
    )
