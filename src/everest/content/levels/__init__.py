"""Level definitions, one JSON file per level."""
