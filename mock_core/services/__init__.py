"""Service layer: content, numbering, delivery and authoring."""
