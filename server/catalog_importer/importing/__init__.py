"""Row-to-entity import pipeline for supplier catalog files."""
