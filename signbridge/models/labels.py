"""
Label set loading.

Accepted ``labels.json`` layouts:
    ["HELLO", "THANKS", ...]
    {"labels": ["HELLO", "THANKS", ...]}
    {"0": "HELLO", "1": "THANKS", ...}

A missing file is not fatal: every class falls back to ``class_<index>``.
A file that exists but cannot be parsed is a startup failure.
"""

import os
import json
import logging

from signbridge.core.types import LabelSet
from signbridge.models.backends import ResourceLoadError

logger = logging.getLogger(__name__)


def parse_labels(data) -> LabelSet:
    """Turn decoded JSON into a LabelSet."""
    if isinstance(data, dict) and "labels" in data:
        data = data["labels"]

    if isinstance(data, list):
        return LabelSet(data)

    if isinstance(data, dict):
        try:
            indexed = {int(k): v for k, v in data.items()}
        except (TypeError, ValueError) as e:
            raise ResourceLoadError("Label mapping keys must be class indices: %s" % e) from e
        if not indexed:
            return LabelSet()
        size = max(indexed) + 1
        return LabelSet(indexed.get(i, f"class_{i}") for i in range(size))

    raise ResourceLoadError("Unsupported label format: %s" % type(data).__name__)


def load_labels(path) -> LabelSet:
    """Load the label set once at startup."""
    if not path or not os.path.isfile(path):
        logger.warning("Label file not found: %s, using class_<index> names", path)
        return LabelSet()

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        raise ResourceLoadError("Failed to read labels from %s: %s" % (path, e)) from e

    labels = parse_labels(data)
    logger.info("Loaded %d labels from %s", len(labels), path)
    return labels
